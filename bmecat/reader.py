"""Decode BMECat XML documents into :class:`ProductCatalog` instances."""

import io
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import ROUND_HALF_UP, Decimal

from lxml import etree

from .codes import CurrencyCode, IncotermCode, LanguageCode, QuantityCode
from .exceptions import IllegalStreamError, MalformedDocumentError
from .models import (
    Buyer,
    PriceFlag,
    Product,
    ProductCatalog,
    Supplier,
    TransportConditions,
)
from .xml_utils import (
    attribute_as_string,
    node_as_datetime,
    node_as_decimal,
    node_as_int,
    node_as_string,
    nodes,
    remove_namespaces,
)

logger = logging.getLogger(__name__)

SUPPORTED_VERSION_PREFIX = "1.2"

# Plain parser: no DTD loading, no network access, no entity expansion
_PARSER_OPTIONS = dict(
    resolve_entities=False,
    load_dtd=False,
    no_network=True,
    huge_tree=True,
    remove_comments=True,
)


def _parse(data: bytes):
    # lxml parsers are not thread-safe, so each call builds its own
    parser = etree.XMLParser(**_PARSER_OPTIONS)
    try:
        root = etree.fromstring(data, parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise MalformedDocumentError(f"Document is not well-formed XML: {e}") from e
    if root is None:
        raise MalformedDocumentError("Document is empty")
    remove_namespaces(root)
    if root.tag != "BMECAT":
        raise MalformedDocumentError(f"Expected root element BMECAT, got {root.tag}")
    return root


def _check_version(root) -> None:
    version = root.get("version", "")
    if version and not (
        version == SUPPORTED_VERSION_PREFIX
        or version.startswith(SUPPORTED_VERSION_PREFIX + ".")
    ):
        logger.warning(
            f"BMECat version {version!r} is not a 1.2 document; decoding anyway"
        )


def _read_header(root, catalog: ProductCatalog) -> None:
    HEADER = "HEADER"
    CATALOG = "HEADER/CATALOG"

    catalog.generator_info = node_as_string(root, f"{HEADER}/GENERATOR_INFO")

    for LANGUAGE in nodes(root, f"{CATALOG}/LANGUAGE"):
        catalog.languages.append(LanguageCode.from_code(LANGUAGE.text))

    catalog.catalog_id = node_as_string(root, f"{CATALOG}/CATALOG_ID")
    catalog.catalog_version = node_as_string(root, f"{CATALOG}/CATALOG_VERSION")
    catalog.catalog_name = node_as_string(root, f"{CATALOG}/CATALOG_NAME")
    catalog.generation_date = node_as_datetime(root, f"{CATALOG}/GENERATION_DATE")
    catalog.currency = CurrencyCode.from_code(
        node_as_string(root, f"{CATALOG}/CURRENCY"))

    for PRICE_FLAG in nodes(root, f"{CATALOG}/PRICE_FLAG"):
        catalog.price_flags.append(PriceFlag(
            type=PRICE_FLAG.get("type", ""),
            active=(PRICE_FLAG.text or "").strip(),
        ))

    if nodes(root, f"{CATALOG}/TRANSPORT"):
        TRANSPORT = f"{CATALOG}/TRANSPORT"
        catalog.transport = TransportConditions(
            incoterm=IncotermCode.from_code(
                node_as_string(root, f"{TRANSPORT}/INCOTERM")),
            location=node_as_string(root, f"{TRANSPORT}/LOCATION"),
            remark=node_as_string(root, f"{TRANSPORT}/TRANSPORT_REMARK"),
        )


def _read_buyer(root) -> Buyer:
    BUYER = "HEADER/BUYER"
    ADDRESS = f"{BUYER}/ADDRESS"

    def address_field(name, legacy_name):
        # ADDRESS sub-block first, flat BUYER_ADDRESS_* elements as fallback
        return (node_as_string(root, f"{ADDRESS}/{name}")
                or node_as_string(root, f"{BUYER}/{legacy_name}"))

    return Buyer(
        id=node_as_string(root, f"{BUYER}/BUYER_ID"),
        id_type=attribute_as_string(root, f"{BUYER}/BUYER_ID", "type"),
        name=node_as_string(root, f"{BUYER}/BUYER_NAME"),
        contact_name=address_field("CONTACT", "BUYER_ADDRESS_CONTACT"),
        street=address_field("STREET", "BUYER_ADDRESS_STREET"),
        zip=address_field("ZIP", "BUYER_ADDRESS_ZIP"),
        city=address_field("CITY", "BUYER_ADDRESS_CITY"),
        country=address_field("COUNTRY", "BUYER_ADDRESS_COUNTRY"),
    )


def _read_supplier(root) -> Supplier:
    SUPPLIER = "HEADER/SUPPLIER"
    ADDRESS = f"{SUPPLIER}/ADDRESS"

    return Supplier(
        id=node_as_string(root, f"{SUPPLIER}/SUPPLIER_ID"),
        id_type=attribute_as_string(root, f"{SUPPLIER}/SUPPLIER_ID", "type"),
        name=node_as_string(root, f"{SUPPLIER}/SUPPLIER_NAME"),
        contact_name=node_as_string(root, f"{ADDRESS}/CONTACT"),
        street=node_as_string(root, f"{ADDRESS}/STREET"),
        zip=node_as_string(root, f"{ADDRESS}/ZIP"),
        city=node_as_string(root, f"{ADDRESS}/CITY"),
        country=node_as_string(root, f"{ADDRESS}/COUNTRY"),
        phone=node_as_string(root, f"{ADDRESS}/PHONE"),
        fax=node_as_string(root, f"{ADDRESS}/FAX"),
        email=node_as_string(root, f"{ADDRESS}/EMAIL"),
        url=node_as_string(root, f"{ADDRESS}/URL"),
    )


def tax_to_vat(tax: Decimal) -> int:
    """Convert a BMECat TAX value into an integer VAT percentage.

    TAX is a fraction (``0.19``). Values above 1 are taken to be a
    percentage already (``19``), which some suppliers write.
    """
    if tax > 1:
        percent = tax
    else:
        percent = tax * 100
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _read_product(PRODUCT) -> Product:
    PRICE = "PRODUCT_PRICE_DETAILS/PRODUCT_PRICE"

    stock = node_as_int(PRODUCT, "PRODUCT_DETAILS/STOCK")
    tax = node_as_decimal(PRODUCT, f"{PRICE}/TAX")
    net_price = node_as_decimal(PRODUCT, f"{PRICE}/PRICE_AMOUNT")

    try:
        return Product(
            no=node_as_string(PRODUCT, "SUPPLIER_PID"),
            description_short=node_as_string(PRODUCT, "PRODUCT_DETAILS/DESCRIPTION_SHORT"),
            description_long=node_as_string(PRODUCT, "PRODUCT_DETAILS/DESCRIPTION_LONG"),
            ean=node_as_string(PRODUCT, "PRODUCT_DETAILS/EAN"),
            stock=stock if stock is not None else 0,
            order_unit=QuantityCode.from_code(
                node_as_string(PRODUCT, "PRODUCT_ORDER_DETAILS/ORDER_UNIT")),
            content_unit=QuantityCode.from_code(
                node_as_string(PRODUCT, "PRODUCT_ORDER_DETAILS/CONTENT_UNIT")),
            currency=CurrencyCode.from_code(
                node_as_string(PRODUCT, f"{PRICE}/PRICE_CURRENCY")),
            net_price=net_price if net_price is not None else Decimal("0"),
            vat=tax_to_vat(tax) if tax is not None else 0,
        )
    except ValueError as e:
        if isinstance(e, MalformedDocumentError):
            raise
        raise MalformedDocumentError(f"Invalid product data: {e}") from e


def _read_products(root, max_workers=None):
    """Decode every PRODUCT node, one task per node.

    Products are returned in the order the tasks finish, which is not
    necessarily document order.
    """
    product_nodes = list(nodes(root, "T_NEW_CATALOG/PRODUCT"))
    products = []
    if not product_nodes:
        return products

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_read_product, PRODUCT) for PRODUCT in product_nodes]
        try:
            for future in as_completed(futures):
                products.append(future.result())
        except Exception:
            for future in futures:
                future.cancel()
            raise
    return products


def loads(data: bytes, max_workers=None) -> ProductCatalog:
    """
    Parse a BMECat document held in memory.

    Args:
        data: The raw document bytes.
        max_workers: Upper bound on product decoding threads; defaults to
            the executor's own limit based on the CPU count.

    Returns:
        ProductCatalog: The fully populated catalog.

    Raises:
        MalformedDocumentError: If the bytes are not a well-formed BMECat
            document or a numeric/date field holds malformed text.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    root = _parse(data)
    _check_version(root)

    catalog = ProductCatalog()
    _read_header(root, catalog)
    catalog.buyer = _read_buyer(root)
    catalog.supplier = _read_supplier(root)
    catalog.products = _read_products(root, max_workers=max_workers)

    logger.info(
        f"Decoded catalog {catalog.catalog_id!r} version "
        f"{catalog.catalog_version!r} with {len(catalog.products)} products"
    )
    return catalog


def load(stream, max_workers=None) -> ProductCatalog:
    """Parse a BMECat document from a binary stream, starting at its beginning."""
    if not _is_readable(stream):
        raise IllegalStreamError("Cannot read from stream")
    stream.seek(0, io.SEEK_SET)
    return loads(stream.read(), max_workers=max_workers)


def load_file(filename, max_workers=None) -> ProductCatalog:
    """
    Parse the BMECat document stored at ``filename``.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    if not os.path.isfile(filename):
        raise FileNotFoundError(f"BMECat file '{filename}' not found")
    logger.debug(f"Loading BMECat from {filename}")
    with open(filename, "rb") as file:
        return load(file, max_workers=max_workers)


def _is_readable(stream) -> bool:
    try:
        return bool(stream.readable() and stream.seekable())
    except (AttributeError, ValueError):
        # missing methods, or the stream is already closed
        return False
