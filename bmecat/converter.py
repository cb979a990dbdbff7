import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path

import jsonschema_rs
import orjson

from . import reader, writer
from .codes import CurrencyCode, IncotermCode, LanguageCode, QuantityCode
from .exceptions import CatalogSchemaError
from .models import (
    Buyer,
    PriceFlag,
    Product,
    ProductCatalog,
    Supplier,
    TransportConditions,
)

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "catalog_schema.json"


def _code_or_none(value):
    return value.code if value.is_known else None


def catalog_to_dict(catalog: ProductCatalog) -> dict:
    """
    Map a catalog onto plain JSON-compatible data.

    Enumerations become their BMECat codes (``None`` for UNKNOWN) and
    decimals become two-digit strings, so the output survives any JSON
    parser without float rounding.
    """
    transport = catalog.transport
    return {
        "catalog_id": catalog.catalog_id,
        "catalog_version": catalog.catalog_version,
        "catalog_name": catalog.catalog_name,
        "generation_date": (catalog.generation_date.isoformat()
                            if catalog.generation_date else None),
        "generator_info": catalog.generator_info,
        "currency": _code_or_none(catalog.currency),
        "languages": [_code_or_none(language) for language in catalog.languages],
        "price_flags": [
            {"type": flag.type, "active": flag.active} for flag in catalog.price_flags
        ],
        "buyer": vars(catalog.buyer).copy(),
        "supplier": vars(catalog.supplier).copy(),
        "transport": {
            "incoterm": _code_or_none(transport.incoterm),
            "location": transport.location,
            "remark": transport.remark,
        } if transport is not None else None,
        "products": [
            {
                "no": product.no,
                "description_short": product.description_short,
                "description_long": product.description_long,
                "ean": product.ean,
                "stock": product.stock,
                "order_unit": _code_or_none(product.order_unit),
                "content_unit": _code_or_none(product.content_unit),
                "currency": _code_or_none(product.currency),
                "net_price": writer.format_decimal(product.net_price),
                "vat": product.vat,
            }
            for product in catalog.products
        ],
    }


def catalog_from_dict(data: dict) -> ProductCatalog:
    """
    Build a catalog from JSON data after validating it against the schema.

    Raises:
        CatalogSchemaError: If the data does not match the catalog schema.
    """
    validate_catalog_json(data)

    try:
        generation_date = (datetime.fromisoformat(data["generation_date"])
                           if data.get("generation_date") else None)
    except ValueError as e:
        raise CatalogSchemaError(f"Invalid generation_date: {e}") from e

    transport = data.get("transport")
    catalog = ProductCatalog(
        catalog_id=data["catalog_id"],
        catalog_version=data["catalog_version"],
        catalog_name=data.get("catalog_name", ""),
        generation_date=generation_date,
        generator_info=data.get("generator_info", ""),
        currency=CurrencyCode.from_code(data.get("currency")),
        languages=[LanguageCode.from_code(code) for code in data.get("languages", [])],
        price_flags=[
            PriceFlag(type=flag["type"], active=flag.get("active", ""))
            for flag in data.get("price_flags", [])
        ],
        buyer=Buyer(**data.get("buyer", {})),
        supplier=Supplier(**data.get("supplier", {})),
        transport=TransportConditions(
            incoterm=IncotermCode.from_code(transport["incoterm"]),
            location=transport.get("location", ""),
            remark=transport.get("remark", ""),
        ) if transport else None,
    )

    for item in data.get("products", []):
        try:
            net_price = Decimal(str(item.get("net_price", "0")))
        except InvalidOperation as e:
            raise CatalogSchemaError(f"Invalid net_price for product {item.get('no', '')!r}") from e
        catalog.products.append(Product(
            no=item.get("no", ""),
            description_short=item.get("description_short", ""),
            description_long=item.get("description_long", ""),
            ean=item.get("ean", ""),
            # integer-valued floats such as 5.0 pass the schema
            stock=int(item.get("stock", 0)),
            order_unit=QuantityCode.from_code(item.get("order_unit")),
            content_unit=QuantityCode.from_code(item.get("content_unit")),
            currency=CurrencyCode.from_code(item.get("currency")),
            net_price=net_price,
            vat=int(item.get("vat", 0)),
        ))
    return catalog


def clean_json(data):
    """
    Recursively clean a JSON-compatible Python object by removing all empty values.
    Empty values are: None, empty strings, empty lists, and empty dictionaries.

    Args:
        data: Any JSON-compatible Python object (dict, list, str, int, float, bool, None)

    Returns:
        A cleaned version of the input data with empty values removed
    """
    # Early return for primitives
    if not isinstance(data, (dict, list)):
        return data

    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            cleaned_value = clean_json(value)
            if not _is_empty(cleaned_value):
                result[key] = cleaned_value
        return result
    else:  # must be a list
        result = []
        for item in data:
            cleaned_item = clean_json(item)
            if not _is_empty(cleaned_item):
                result.append(cleaned_item)
        return result


def _is_empty(value) -> bool:
    return value is None or value == "" or value == [] or value == {}


def load_json_file(file_path):
    if not Path(file_path).is_file():
        raise FileNotFoundError(f"JSON file '{file_path}' not found")
    with open(file_path, "rb") as file:  # Note: orjson requires binary mode
        try:
            return orjson.loads(file.read())
        except orjson.JSONDecodeError as e:
            raise CatalogSchemaError(f"Invalid JSON in '{file_path}': {e}") from e


@lru_cache(maxsize=None)
def _get_validator():
    # Create validator (schema validation happens here)
    return jsonschema_rs.validator_for(load_json_file(SCHEMA_PATH))


def validate_catalog_json(instance) -> None:
    """
    Validate JSON catalog data against the catalog schema.

    Raises:
        CatalogSchemaError: With one (message, location) entry per violation.
    """
    validator = _get_validator()
    if validator.is_valid(instance):
        return
    errors = [
        (error.message, "/" + "/".join(str(part) for part in error.instance_path))
        for error in validator.iter_errors(instance)
    ]
    for message, location in errors:
        logger.debug(f"Schema error at {location}: {message}")
    raise CatalogSchemaError(
        f"Catalog JSON is not valid: {errors[0][0]} (at {errors[0][1]})", errors)


def dumps_json(catalog: ProductCatalog) -> bytes:
    return orjson.dumps(clean_json(catalog_to_dict(catalog)), option=orjson.OPT_INDENT_2)


def loads_json(data: bytes) -> ProductCatalog:
    try:
        instance = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise CatalogSchemaError(f"Invalid JSON: {e}") from e
    return catalog_from_dict(instance)


def convert_file(input_path, output_path) -> None:
    """Convert a BMECat XML file into a catalog JSON file."""
    logger.info(f"Working with: {input_path}")

    catalog = reader.load_file(input_path)

    logger.info("Writing JSON...")
    with open(output_path, "wb") as file:
        file.write(dumps_json(catalog))

    logger.info(f"Conversion completed: {output_path}")


def convert_json_file(input_path, output_path) -> None:
    """Convert a catalog JSON file into a BMECat XML file."""
    logger.info(f"Working with: {input_path}")

    catalog = catalog_from_dict(load_json_file(input_path))

    logger.info("Writing BMECat...")
    writer.save_file(catalog, output_path)

    logger.info(f"Conversion completed: {output_path}")
