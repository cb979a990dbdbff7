from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .codes import CurrencyCode, IncotermCode, LanguageCode, QuantityCode


@dataclass
class PriceFlag:
    type: str = ""
    active: str = ""


@dataclass
class Buyer:
    id: str = ""
    id_type: str = ""
    name: str = ""
    contact_name: str = ""
    street: str = ""
    zip: str = ""
    city: str = ""
    country: str = ""

    def is_empty(self) -> bool:
        """True when there is no identity to write a BUYER element for."""
        return not (self.id or self.name)


@dataclass
class Supplier:
    id: str = ""
    id_type: str = ""
    name: str = ""
    contact_name: str = ""
    street: str = ""
    zip: str = ""
    city: str = ""
    country: str = ""
    phone: str = ""
    fax: str = ""
    email: str = ""
    url: str = ""


@dataclass
class TransportConditions:
    incoterm: IncotermCode = IncotermCode.UNKNOWN
    location: str = ""
    remark: str = ""


@dataclass
class Product:
    no: str = ""
    description_short: str = ""
    description_long: str = ""
    ean: str = ""
    stock: int = 0
    order_unit: QuantityCode = QuantityCode.UNKNOWN
    content_unit: QuantityCode = QuantityCode.UNKNOWN
    currency: CurrencyCode = CurrencyCode.UNKNOWN
    net_price: Decimal = Decimal("0")
    # integer percentage, 19 means 19 %
    vat: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.net_price, Decimal):
            self.net_price = Decimal(str(self.net_price))
        if self.net_price < 0:
            raise ValueError("Net price cannot be negative.")
        if not 0 <= self.vat <= 100:
            raise ValueError(f"VAT must be a percentage between 0 and 100, got {self.vat}")


@dataclass
class ProductCatalog:
    """A complete BMECat catalog: header data plus the product list."""

    catalog_id: str = ""
    catalog_version: str = ""
    catalog_name: str = ""
    generation_date: Optional[datetime] = None
    generator_info: str = ""
    currency: CurrencyCode = CurrencyCode.UNKNOWN
    languages: List[LanguageCode] = field(default_factory=list)
    price_flags: List[PriceFlag] = field(default_factory=list)
    buyer: Buyer = field(default_factory=Buyer)
    supplier: Supplier = field(default_factory=Supplier)
    transport: Optional[TransportConditions] = None
    products: List[Product] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.products)
