from shelfprice.models.product import Product
from shelfprice.models.store import Store
from shelfprice.models.device import Device
from shelfprice.models.price import Price

__all__ = [
    "Product",
    "Store",
    "Device",
    "Price",
]
