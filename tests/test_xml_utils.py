from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from lxml import etree

from bmecat.exceptions import MalformedDocumentError
from bmecat.xml_utils import (
    attribute_as_string,
    node_as_datetime,
    node_as_decimal,
    node_as_int,
    node_as_string,
    nodes,
    remove_namespaces,
)

DOCUMENT = b"""
<ROOT>
  <ITEM type="first"> one </ITEM>
  <ITEM type="second">two</ITEM>
  <EMPTY/>
  <NUMBERS>
    <INT>42</INT>
    <NEGATIVE>-3</NEGATIVE>
    <DECIMAL>9.90</DECIMAL>
    <ZERO>0</ZERO>
    <BAD_INT>4.2</BAD_INT>
    <BAD_DECIMAL>9,90</BAD_DECIMAL>
    <NAN>NaN</NAN>
    <DATE>2024-03-01T08:30:00+01:00</DATE>
    <BAD_DATE>yesterday</BAD_DATE>
  </NUMBERS>
</ROOT>
"""


@pytest.fixture
def root():
    return etree.fromstring(DOCUMENT)


class TestTextLookups:

    def test_first_match_text_is_stripped(self, root):
        assert node_as_string(root, "ITEM") == "one"

    def test_missing_node_is_empty_string(self, root):
        assert node_as_string(root, "MISSING/DEEPER") == ""

    def test_empty_element_is_empty_string(self, root):
        assert node_as_string(root, "EMPTY") == ""

    def test_attribute_of_first_match(self, root):
        assert attribute_as_string(root, "ITEM", "type") == "first"

    def test_missing_attribute_or_element(self, root):
        assert attribute_as_string(root, "ITEM", "lang") == ""
        assert attribute_as_string(root, "MISSING", "type") == ""

    def test_attribute_selector_in_path(self, root):
        assert node_as_string(root, "ITEM[2]/@type") == "second"


class TestNodeList:

    def test_all_matches_in_order(self, root):
        assert [item.text for item in nodes(root, "ITEM")] == [" one ", "two"]

    def test_no_matches_is_empty(self, root):
        result = nodes(root, "MISSING")
        assert list(result) == []
        assert not result
        assert len(result) == 0

    def test_can_be_traversed_twice(self, root):
        result = nodes(root, "ITEM")
        assert len(list(result)) == 2
        assert len(list(result)) == 2


class TestTypedLookups:

    def test_int(self, root):
        assert node_as_int(root, "NUMBERS/INT") == 42
        assert node_as_int(root, "NUMBERS/NEGATIVE") == -3

    def test_zero_is_not_absent(self, root):
        assert node_as_int(root, "NUMBERS/ZERO") == 0
        assert node_as_decimal(root, "NUMBERS/ZERO") == Decimal("0")

    def test_absent_values_are_none(self, root):
        assert node_as_int(root, "NUMBERS/MISSING") is None
        assert node_as_decimal(root, "NUMBERS/MISSING") is None
        assert node_as_datetime(root, "NUMBERS/MISSING") is None
        assert node_as_int(root, "EMPTY") is None

    def test_decimal(self, root):
        assert node_as_decimal(root, "NUMBERS/DECIMAL") == Decimal("9.90")

    def test_datetime_keeps_offset(self, root):
        value = node_as_datetime(root, "NUMBERS/DATE")
        assert value == datetime(2024, 3, 1, 8, 30, tzinfo=timezone(timedelta(hours=1)))

    @pytest.mark.parametrize("lookup, path", [
        (node_as_int, "NUMBERS/BAD_INT"),
        (node_as_decimal, "NUMBERS/BAD_DECIMAL"),
        (node_as_decimal, "NUMBERS/NAN"),
        (node_as_datetime, "NUMBERS/BAD_DATE"),
    ])
    def test_malformed_values_raise(self, root, lookup, path):
        with pytest.raises(MalformedDocumentError):
            lookup(root, path)


def test_remove_namespaces():
    root = etree.fromstring(
        b'<BMECAT xmlns="http://www.bmecat.org/bmecat/2005"><HEADER/></BMECAT>')
    remove_namespaces(root)
    assert root.tag == "BMECAT"
    assert root[0].tag == "HEADER"
    assert node_as_string(root, "HEADER") == ""
    assert len(nodes(root, "HEADER")) == 1
