from pos_api.models.users import User
from pos_api.models.clients import Client
from pos_api.models.products import Product
from pos_api.models.sales import Sale, SaleStatus
from pos_api.models.sale_items import SaleItem

__all__ = ["User", "Client", "Product", "Sale", "SaleStatus", "SaleItem"]
