"""Encode :class:`ProductCatalog` instances as BMECat 1.2 XML documents."""

import logging
import os
import tempfile
from decimal import ROUND_HALF_UP, Decimal, localcontext

from lxml import etree

from .codes import CurrencyCode, LanguageCode, QuantityCode
from .exceptions import IllegalStreamError, InvalidCatalogError
from .models import ProductCatalog

logger = logging.getLogger(__name__)

BMECAT_VERSION = "1.2"
DOCTYPE = '<!DOCTYPE BMECAT SYSTEM "bmecat_new_catalog_1_2.dtd">'
# Written for an id without a type, so such an id decodes with this type set
DEFAULT_BUYER_ID_TYPE = "buyer_specific"
DEFAULT_SUPPLIER_ID_TYPE = "supplier_specific"

_TWO_PLACES = Decimal("0.01")


def format_decimal(value) -> str:
    """
    Render ``value`` with exactly two decimal digits and a period separator.

    The result never depends on the host locale: ``1234.5`` is always
    ``"1234.50"``.
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    with localcontext() as ctx:
        # room for every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, value.adjusted() + 4)
        return f"{value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP):f}"


def vat_to_tax(vat: int) -> str:
    """Format an integer VAT percentage as a BMECat TAX fraction (19 -> "0.19")."""
    return format_decimal(Decimal(vat) / 100)


def format_datetime(value) -> str:
    return value.isoformat(timespec="seconds")


def _sub(parent, tag, text=None, **attributes):
    try:
        element = etree.SubElement(parent, tag, **attributes)
        if text is not None:
            element.text = text
    except ValueError as e:
        # lxml rejects control characters and other non-XML text
        raise InvalidCatalogError(f"{tag} holds text that cannot be written as XML: {e}") from e
    return element


def _sub_optional(parent, tag, value, **attributes):
    """Write ``tag`` only when ``value`` has a non-empty string form."""
    if value is None:
        return None
    text = str(value)
    if not text:
        return None
    return _sub(parent, tag, text, **attributes)


def validate_catalog(catalog: ProductCatalog) -> None:
    """
    Check that ``catalog`` carries everything the grammar requires.

    Raises:
        InvalidCatalogError: If the catalog id or version is empty, or a
            language or incoterm is UNKNOWN.
    """
    if not catalog.catalog_id:
        raise InvalidCatalogError("Catalog id is required")
    if not catalog.catalog_version:
        raise InvalidCatalogError("Catalog version is required")
    if LanguageCode.UNKNOWN in catalog.languages:
        raise InvalidCatalogError("Catalog languages contain an unknown language code")
    if catalog.transport is not None and not catalog.transport.incoterm.is_known:
        raise InvalidCatalogError("Transport conditions need a known incoterm")


def _write_header(BMECAT, catalog: ProductCatalog) -> None:
    HEADER = _sub(BMECAT, "HEADER")
    _sub_optional(HEADER, "GENERATOR_INFO", catalog.generator_info)

    CATALOG = _sub(HEADER, "CATALOG")
    for language in catalog.languages:
        _sub(CATALOG, "LANGUAGE", language.code)
    _sub(CATALOG, "CATALOG_ID", catalog.catalog_id)
    _sub(CATALOG, "CATALOG_VERSION", catalog.catalog_version)
    _sub_optional(CATALOG, "CATALOG_NAME", catalog.catalog_name)
    if catalog.generation_date is not None:
        _sub(CATALOG, "GENERATION_DATE", format_datetime(catalog.generation_date))
    if catalog.currency.is_known:
        _sub(CATALOG, "CURRENCY", catalog.currency.code)
    for price_flag in catalog.price_flags:
        _sub(CATALOG, "PRICE_FLAG", price_flag.active, type=price_flag.type)

    if catalog.transport is not None:
        TRANSPORT = _sub(CATALOG, "TRANSPORT")
        _sub(TRANSPORT, "INCOTERM", catalog.transport.incoterm.code)
        _sub_optional(TRANSPORT, "LOCATION", catalog.transport.location)
        _sub_optional(TRANSPORT, "TRANSPORT_REMARK", catalog.transport.remark)

    buyer = catalog.buyer
    if buyer is not None and not buyer.is_empty():
        BUYER = _sub(HEADER, "BUYER")
        if buyer.id:
            _sub(BUYER, "BUYER_ID", buyer.id, type=buyer.id_type or DEFAULT_BUYER_ID_TYPE)
        _sub_optional(BUYER, "BUYER_NAME", buyer.name)

        ADDRESS = _sub(BUYER, "ADDRESS", type="buyer")
        _sub_optional(ADDRESS, "NAME", buyer.name)
        _sub_optional(ADDRESS, "CONTACT", buyer.contact_name)
        _sub_optional(ADDRESS, "STREET", buyer.street)
        _sub_optional(ADDRESS, "ZIP", buyer.zip)
        _sub_optional(ADDRESS, "CITY", buyer.city)
        _sub_optional(ADDRESS, "COUNTRY", buyer.country)

    supplier = catalog.supplier
    SUPPLIER = _sub(HEADER, "SUPPLIER")
    id_type = supplier.id_type or (DEFAULT_SUPPLIER_ID_TYPE if supplier.id else "")
    if id_type:
        _sub(SUPPLIER, "SUPPLIER_ID", supplier.id, type=id_type)
    else:
        _sub(SUPPLIER, "SUPPLIER_ID", supplier.id)
    _sub(SUPPLIER, "SUPPLIER_NAME", supplier.name)

    ADDRESS = _sub(SUPPLIER, "ADDRESS", type="supplier")
    _sub_optional(ADDRESS, "NAME", supplier.name)
    _sub_optional(ADDRESS, "CONTACT", supplier.contact_name)
    _sub_optional(ADDRESS, "STREET", supplier.street)
    _sub_optional(ADDRESS, "ZIP", supplier.zip)
    _sub_optional(ADDRESS, "CITY", supplier.city)
    _sub_optional(ADDRESS, "COUNTRY", supplier.country)
    _sub_optional(ADDRESS, "PHONE", supplier.phone)
    _sub_optional(ADDRESS, "FAX", supplier.fax)
    _sub_optional(ADDRESS, "EMAIL", supplier.email)
    _sub_optional(ADDRESS, "URL", supplier.url)


def _write_products(BMECAT, catalog: ProductCatalog) -> None:
    T_NEW_CATALOG = _sub(BMECAT, "T_NEW_CATALOG")
    for product in catalog.products:
        PRODUCT = _sub(T_NEW_CATALOG, "PRODUCT", mode="new")
        _sub_optional(PRODUCT, "SUPPLIER_PID", product.no)

        DETAILS = _sub(PRODUCT, "PRODUCT_DETAILS")
        _sub_optional(DETAILS, "DESCRIPTION_SHORT", product.description_short)
        _sub_optional(DETAILS, "DESCRIPTION_LONG", product.description_long)
        _sub_optional(DETAILS, "EAN", product.ean)
        _sub_optional(DETAILS, "STOCK", product.stock)

        ORDER_DETAILS = _sub(PRODUCT, "PRODUCT_ORDER_DETAILS")
        if product.order_unit is not QuantityCode.UNKNOWN:
            _sub(ORDER_DETAILS, "ORDER_UNIT", product.order_unit.code)
        if product.content_unit is not QuantityCode.UNKNOWN:
            _sub(ORDER_DETAILS, "CONTENT_UNIT", product.content_unit.code)

        PRICE_DETAILS = _sub(PRODUCT, "PRODUCT_PRICE_DETAILS")
        PRICE = _sub(PRICE_DETAILS, "PRODUCT_PRICE", price_type="net_list")
        _sub(PRICE, "PRICE_AMOUNT", format_decimal(product.net_price))
        currency = product.currency
        if currency is CurrencyCode.UNKNOWN:
            currency = catalog.currency
        if currency.is_known:
            _sub(PRICE, "PRICE_CURRENCY", currency.code)
        _sub(PRICE, "TAX", vat_to_tax(product.vat))


def build_tree(catalog: ProductCatalog):
    """Build the BMECAT element tree for ``catalog``."""
    validate_catalog(catalog)
    BMECAT = etree.Element("BMECAT", version=BMECAT_VERSION)
    _write_header(BMECAT, catalog)
    _write_products(BMECAT, catalog)
    return BMECAT


def dumps(catalog: ProductCatalog) -> bytes:
    """
    Serialize ``catalog`` to a UTF-8 BMECat document.

    Returns:
        bytes: The complete document, including XML declaration and DOCTYPE.

    Raises:
        InvalidCatalogError: If the catalog is missing required data.
    """
    BMECAT = build_tree(catalog)
    data = etree.tostring(
        BMECAT,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
        doctype=DOCTYPE,
    )
    logger.info(
        f"Encoded catalog {catalog.catalog_id!r} with {len(catalog.products)} "
        f"products ({len(data)} bytes)"
    )
    return data


def dump(catalog: ProductCatalog, stream) -> None:
    """Write ``catalog`` to a binary stream.

    The document is rendered in full before the first byte is written, so
    an invalid catalog leaves the stream untouched.
    """
    if not _is_writable(stream):
        raise IllegalStreamError("Cannot write to stream")
    stream.write(dumps(catalog))
    stream.flush()


def save_file(catalog: ProductCatalog, filename) -> None:
    """
    Write ``catalog`` to ``filename``.

    The document goes to a temporary file in the same directory first and is
    renamed over ``filename`` once complete, so a failed write never leaves a
    truncated catalog behind.
    """
    data = dumps(catalog)
    directory = os.path.dirname(os.path.abspath(filename))
    with tempfile.NamedTemporaryFile(
        delete=False, dir=directory, suffix=".tmp"
    ) as tmp_file:
        tmp_path = tmp_file.name
        try:
            tmp_file.write(data)
        except OSError:
            tmp_file.close()
            os.remove(tmp_path)
            raise
    os.replace(tmp_path, filename)
    logger.debug(f"Saved BMECat to {filename}")


def _is_writable(stream) -> bool:
    try:
        return bool(stream.writable())
    except (AttributeError, ValueError):
        return False
