from __future__ import annotations

from enum import Enum


class Country(Enum):
    CN = ("CN", "https://www.apple.com.cn")
    CN_HK = ("CN-HK", "https://www.apple.com/hk")
    CN_MO = ("CN-MO", "https://www.apple.com/mo")
    CN_TW = ("CN-TW", "https://www.apple.com/tw")
    JP = ("JP", "https://www.apple.com/jp")
    KR = ("KR", "https://www.apple.com/kr")
    SG = ("SG", "https://www.apple.com/sg")
    MY = ("MY", "https://www.apple.com/my")
    AU = ("AU", "https://www.apple.com/au")
    UK = ("UK", "https://www.apple.com/uk")
    CA = ("CA", "https://www.apple.com/ca")
    US = ("US", "https://www.apple.com")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def url(self) -> str:
        return self.value[1]


DEFAULT_COUNTRY = Country.CN


def resolve_base_url(code: str) -> str:
    # exact, case-sensitive match
    for country in Country:
        if country.code == code:
            return country.url
    return DEFAULT_COUNTRY.url
