"""
Registration form rules.

Every rule here runs before any photo is compressed or any network call is
made. Errors are keyed by the camelCase field names the landing page form
posts, so the page can show each message beside its input.
"""

import os
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

NO_INSTAGRAM_SENTINEL = "없음"

PARTICIPATION_TYPES = ("1+2차", "1부", "2부")

# Anything outside this window is a typo, not an age question.
PLAUSIBLE_YEARS = (1980, 2010)

MIN_PHONE_DIGITS = 10

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FormVariant:
    """Per-deployment rule set (event branding changes the eligible ages)."""

    name: str
    male_years: Tuple[int, int]
    female_years: Tuple[int, int]
    require_profile: bool = False
    event_dates: Tuple[str, ...] = field(default_factory=tuple)

    def years_for(self, gender: str) -> Optional[Tuple[int, int]]:
        if gender == "male":
            return self.male_years
        if gender == "female":
            return self.female_years
        return None


VARIANTS: Dict[str, FormVariant] = {
    "basic": FormVariant(
        name="basic",
        male_years=(1993, 2006),
        female_years=(1995, 2007),
    ),
    "sadang": FormVariant(
        name="sadang",
        male_years=(1990, 2004),
        female_years=(1992, 2005),
        require_profile=True,
        event_dates=("2026-03-14", "2026-03-21", "2026-03-28", "2026-04-04"),
    ),
}


def get_variant(name: Optional[str] = None) -> FormVariant:
    """Resolve a variant by name, defaulting to FORM_VARIANT then `basic`."""
    key = (name or os.getenv("FORM_VARIANT") or "basic").strip().lower()
    try:
        return VARIANTS[key]
    except KeyError:
        raise RuntimeError(f"Unknown FORM_VARIANT '{key}'. Expected one of: {', '.join(VARIANTS)}")


def _digits(value: Any) -> str:
    return re.sub(r"[^0-9]", "", str(value or ""))


def normalize_phone(value: Any) -> str:
    # 010-1234-5678 / 010 1234 5678 -> 01012345678
    return _digits(value)


def parse_birth_date(value: Any) -> Optional[date]:
    """Accept 19990501 or 1999-05-01; return None unless it is a real date."""
    digits = _digits(value)
    if len(digits) != 8:
        return None
    try:
        return date(int(digits[:4]), int(digits[4:6]), int(digits[6:]))
    except ValueError:
        return None


def _text(form: Mapping[str, Any], key: str) -> str:
    value = form.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _flag(form: Mapping[str, Any], key: str) -> bool:
    value = form.get(key)
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _age_message(gender: str, years: Tuple[int, int]) -> str:
    label = "남성" if gender == "male" else "여성"
    return f"{label}은 {years[0] % 100:02d}~{years[1] % 100:02d}년생만 신청 가능합니다"


def validate_form(
    form: Mapping[str, Any],
    photos: Mapping[str, Any],
    variant: FormVariant,
) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    gender = _text(form, "gender")

    if not _text(form, "name"):
        errors["name"] = "성함을 입력해주세요"
    if gender not in ("male", "female"):
        errors["gender"] = "성별을 선택해주세요"

    raw_birth = _text(form, "birthDate")
    birth = parse_birth_date(raw_birth)
    if not raw_birth or len(_digits(raw_birth)) != 8:
        errors["birthDate"] = "생년월일 8자리를 입력해주세요"
    elif birth is None or not PLAUSIBLE_YEARS[0] <= birth.year <= PLAUSIBLE_YEARS[1]:
        errors["birthDate"] = "올바른 생년월일을 입력해주세요"
    else:
        years = variant.years_for(gender)
        if years and not years[0] <= birth.year <= years[1]:
            errors["birthDate"] = _age_message(gender, years)

    if len(normalize_phone(form.get("phone"))) < MIN_PHONE_DIGITS:
        errors["phone"] = "올바른 연락처를 입력해주세요"

    if not _flag(form, "noInstagram") and not _text(form, "instagramId"):
        errors["instagramId"] = '인스타 ID를 입력하거나 "없음"을 선택해주세요'

    if not _text(form, "height"):
        errors["height"] = "키를 입력해주세요"
    if not _text(form, "weight"):
        errors["weight"] = "몸무게를 입력해주세요"

    if not photos.get("bodyPhoto"):
        errors["bodyPhoto"] = "전신 사진을 업로드해주세요"
    if not photos.get("facePhoto"):
        errors["facePhoto"] = "얼굴 사진을 업로드해주세요"

    if variant.require_profile:
        event_date = _text(form, "eventDate")
        if not event_date or (variant.event_dates and event_date not in variant.event_dates):
            errors["eventDate"] = "참가 희망 날짜를 선택해주세요"
        if not _text(form, "location"):
            errors["location"] = "거주지를 입력해주세요"
        if not _text(form, "job"):
            errors["job"] = "직업을 입력해주세요"
        if _text(form, "participationType") not in PARTICIPATION_TYPES:
            errors["participationType"] = "참여 구분을 선택해주세요"
        if not _flag(form, "agreeAlcohol"):
            errors["agreeAlcohol"] = "주류 대리구매 동의는 필수입니다"
        if not _flag(form, "agreeTerms"):
            errors["agreeTerms"] = "파티 이용 규정 동의는 필수입니다"
        if not _flag(form, "agreePrivacy"):
            errors["agreePrivacy"] = "개인정보 수집 동의는 필수입니다"
        if not _flag(form, "agreeRefund"):
            errors["agreeRefund"] = "취소 및 환불 규정 동의는 필수입니다"

    return errors


# form field -> registrations column, for the free-text fields later variants added
_OPTIONAL_COLUMNS = {
    "eventDate": "event_date",
    "location": "location",
    "job": "job",
    "charm": "charm",
    "preferredStyle": "preferred_style",
    "participationType": "participation_type",
    "referralSource": "referral_source",
}


def build_record(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalise a validated form into a `registrations` row (without photos)."""
    birth = parse_birth_date(form.get("birthDate"))

    record: Dict[str, Any] = {
        "name": _text(form, "name"),
        "birth_date": birth.isoformat() if birth else "",
        "gender": _text(form, "gender"),
        "phone": normalize_phone(form.get("phone")),
        "instagram_id": NO_INSTAGRAM_SENTINEL if _flag(form, "noInstagram") else _text(form, "instagramId"),
        "height": _text(form, "height"),
        "weight": _text(form, "weight"),
        "sms_sent": False,
    }

    for key, column in _OPTIONAL_COLUMNS.items():
        value = _text(form, key)
        if value:
            record[column] = value

    return record
