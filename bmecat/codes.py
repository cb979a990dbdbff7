"""Code tables for the enumerated values used in BMECat documents.

Every enumeration carries an ``UNKNOWN`` member. Decoding a code string that
is not in the table yields ``UNKNOWN`` instead of raising, so a catalog with
an odd currency or unit still loads. Encoding ``UNKNOWN`` raises ``ValueError``;
the writer decides per field whether that means "omit" or "invalid catalog".
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class CodeEnum(Enum):
    """Base for enumerations that map onto BMECat code strings."""

    @classmethod
    def from_code(cls, code: Optional[str]):
        """Return the member for ``code``, or ``UNKNOWN`` if it is not mapped."""
        if not code:
            return cls.UNKNOWN
        return _LOOKUP[cls].get(code.strip().upper(), cls.UNKNOWN)

    @property
    def code(self) -> str:
        if self is type(self).UNKNOWN:
            raise ValueError(f"{type(self).__name__}.UNKNOWN has no BMECat code")
        return self.value

    @property
    def is_known(self) -> bool:
        return self is not type(self).UNKNOWN


class LanguageCode(CodeEnum):
    """ISO 639-2 language codes (terminological form)."""

    UNKNOWN = "Unknown"
    # Germanic languages
    DEU = "deu"
    ENG = "eng"
    NLD = "nld"
    SWE = "swe"
    NOR = "nor"
    DAN = "dan"
    ISL = "isl"
    # Romance languages
    FRA = "fra"
    ITA = "ita"
    SPA = "spa"
    POR = "por"
    RON = "ron"
    # Slavic languages
    RUS = "rus"
    POL = "pol"
    CES = "ces"
    SLK = "slk"
    SLV = "slv"
    HRV = "hrv"
    SRP = "srp"
    UKR = "ukr"
    BUL = "bul"
    # Other European languages
    ELL = "ell"
    HUN = "hun"
    FIN = "fin"
    EST = "est"
    LAV = "lav"
    LIT = "lit"
    TUR = "tur"
    # Asian and Middle Eastern languages
    JPN = "jpn"
    ZHO = "zho"
    KOR = "kor"
    ARA = "ara"
    HEB = "heb"
    FAS = "fas"


class CurrencyCode(CodeEnum):
    """ISO 4217 currency codes."""

    UNKNOWN = "Unknown"
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    CHF = "CHF"
    JPY = "JPY"
    CNY = "CNY"
    SEK = "SEK"
    NOK = "NOK"
    DKK = "DKK"
    ISK = "ISK"
    PLN = "PLN"
    CZK = "CZK"
    HUF = "HUF"
    RON = "RON"
    BGN = "BGN"
    RUB = "RUB"
    TRY = "TRY"
    CAD = "CAD"
    AUD = "AUD"
    NZD = "NZD"
    INR = "INR"
    BRL = "BRL"
    ZAR = "ZAR"


class QuantityCode(CodeEnum):
    """UN/ECE Recommendation 20 unit codes used for order and content units."""

    UNKNOWN = "Unknown"
    # Counted units
    PIECE = "C62"
    PAIR = "PR"
    SET = "SET"
    DOZEN = "DZN"
    # Packaging
    PACK = "PK"
    PACKET = "PA"
    BOX = "BX"
    CARTON = "CT"
    BAG = "BG"
    BOTTLE = "BO"
    CAN = "CA"
    ROLL = "RO"
    PALLET = "PF"
    # Mass
    GRAM = "GRM"
    KILOGRAM = "KGM"
    TONNE = "TNE"
    # Length, area, volume
    MILLIMETRE = "MMT"
    CENTIMETRE = "CMT"
    METRE = "MTR"
    KILOMETRE = "KMT"
    SQUARE_METRE = "MTK"
    CUBIC_METRE = "MTQ"
    MILLILITRE = "MLT"
    LITRE = "LTR"
    # Time and energy
    SECOND = "SEC"
    MINUTE = "MIN"
    HOUR = "HUR"
    DAY = "DAY"
    MONTH = "MON"
    YEAR = "ANN"
    KILOWATT_HOUR = "KWH"


class IncotermCode(CodeEnum):
    """Incoterms 2000/2010/2020 delivery terms."""

    UNKNOWN = "Unknown"
    EXW = "EXW"
    FCA = "FCA"
    FAS = "FAS"
    FOB = "FOB"
    CFR = "CFR"
    CIF = "CIF"
    CPT = "CPT"
    CIP = "CIP"
    DAF = "DAF"
    DES = "DES"
    DEQ = "DEQ"
    DDU = "DDU"
    DAT = "DAT"
    DAP = "DAP"
    DPU = "DPU"
    DDP = "DDP"


# ISO 639-2/B (bibliographic) codes accepted on input, mapped to the
# terminological member that is written on output
LANGUAGE_ALIASES = MappingProxyType({
    "ger": LanguageCode.DEU,
    "dut": LanguageCode.NLD,
    "ice": LanguageCode.ISL,
    "fre": LanguageCode.FRA,
    "rum": LanguageCode.RON,
    "cze": LanguageCode.CES,
    "slo": LanguageCode.SLK,
    "gre": LanguageCode.ELL,
    "chi": LanguageCode.ZHO,
    "per": LanguageCode.FAS,
})


def _build_table(enum_cls, aliases: Optional[Mapping] = None) -> Mapping:
    table = {
        member.value.upper(): member
        for member in enum_cls
        if member is not enum_cls.UNKNOWN
    }
    if aliases:
        table.update({alias.upper(): member for alias, member in aliases.items()})
    return MappingProxyType(table)


_LOOKUP = MappingProxyType({
    LanguageCode: _build_table(LanguageCode, LANGUAGE_ALIASES),
    CurrencyCode: _build_table(CurrencyCode),
    QuantityCode: _build_table(QuantityCode),
    IncotermCode: _build_table(IncotermCode),
})
