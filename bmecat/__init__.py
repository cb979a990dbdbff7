"""Read and write BMECat 1.2 product catalogs."""

from .codes import CurrencyCode, IncotermCode, LanguageCode, QuantityCode
from .exceptions import (
    BMECatError,
    CatalogSchemaError,
    IllegalStreamError,
    InvalidCatalogError,
    MalformedDocumentError,
)
from .models import (
    Buyer,
    PriceFlag,
    Product,
    ProductCatalog,
    Supplier,
    TransportConditions,
)
from .reader import load, load_file, loads
from .writer import dump, dumps, save_file

__version__ = "0.1.0"

__all__ = [
    "BMECatError",
    "Buyer",
    "CatalogSchemaError",
    "CurrencyCode",
    "IllegalStreamError",
    "IncotermCode",
    "InvalidCatalogError",
    "LanguageCode",
    "MalformedDocumentError",
    "PriceFlag",
    "Product",
    "ProductCatalog",
    "QuantityCode",
    "Supplier",
    "TransportConditions",
    "dump",
    "dumps",
    "load",
    "load_file",
    "loads",
    "save_file",
]
