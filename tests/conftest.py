"""Shared fixtures for the BMECat codec tests."""

import logging
from decimal import Decimal
from pathlib import Path

import pytest

from bmecat import (
    Buyer,
    CurrencyCode,
    IncotermCode,
    LanguageCode,
    PriceFlag,
    Product,
    ProductCatalog,
    QuantityCode,
    Supplier,
    TransportConditions,
)

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture(scope="session")
def fixtures_dir():
    """Provides path to test fixture files."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def sample_path(fixtures_dir):
    return fixtures_dir / "sample_catalog.xml"


@pytest.fixture
def sample_bytes(sample_path):
    return sample_path.read_bytes()


@pytest.fixture
def catalog():
    """A fully populated catalog with the two products P1 and P2."""
    return ProductCatalog(
        catalog_id="CAT-1",
        catalog_version="1.0",
        catalog_name="Spring catalog",
        generator_info="Catalog export 4.2",
        currency=CurrencyCode.EUR,
        languages=[LanguageCode.DEU, LanguageCode.ENG],
        price_flags=[
            PriceFlag(type="incl_freight", active="false"),
            PriceFlag(type="incl_packing", active="true"),
        ],
        buyer=Buyer(id="B-77", id_type="buyer_specific", name="Acme Procurement",
                    contact_name="Jane Doe", street="Main Street 1", zip="10115",
                    city="Berlin", country="DE"),
        supplier=Supplier(id="123456789", id_type="duns", name="Widget Works",
                          street="Industrial Road 5", zip="20095", city="Hamburg",
                          country="DE", phone="+49 40 123456",
                          email="sales@widget.example"),
        transport=TransportConditions(incoterm=IncotermCode.DAP, location="Hamburg"),
        products=[
            Product(no="P1", description_short="Small widget", ean="4006381333931",
                    stock=12, order_unit=QuantityCode.PIECE,
                    content_unit=QuantityCode.PIECE, currency=CurrencyCode.EUR,
                    net_price=Decimal("9.9"), vat=19),
            Product(no="P2", description_short="Large widget", ean="4006381333948",
                    stock=0, order_unit=QuantityCode.PACK,
                    net_price=Decimal("100"), vat=7),
        ],
    )


@pytest.fixture
def minimal_catalog():
    return ProductCatalog(catalog_id="MIN-1", catalog_version="2")
