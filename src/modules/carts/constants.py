"""Cart domain constants."""

# Per-request quantity bound for a single cart line.
CART_MAX_ITEM_QUANTITY = 10
