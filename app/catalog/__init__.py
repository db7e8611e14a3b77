"""
Catalog: vendor products and variants with their current prices.

Checkout resolves every cart line against this catalog; the price and
snapshot frozen on an OrderItem always come from here, never from the client.
"""
