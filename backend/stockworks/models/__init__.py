from .common import LocalizedText
from .tenancy import Tenant
from .materials import RawMaterial, MaterialReceipt
from .products import Product, ProductBOM
from .production import ProductionRecord, ProductionMaterial
from .sales import SaleRecord
from .parties import Customer, Supplier, CustomerTransaction, SupplierTransaction
from .ledger import StockMovement

__all__ = [
    'LocalizedText', 'Tenant',
    'RawMaterial', 'MaterialReceipt',
    'Product', 'ProductBOM',
    'ProductionRecord', 'ProductionMaterial',
    'SaleRecord',
    'Customer', 'Supplier', 'CustomerTransaction', 'SupplierTransaction',
    'StockMovement',
]
