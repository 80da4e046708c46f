"""Module: normalize_phone_numbers."""

import re

from medalert.db.session import SessionLocal
from medalert.db.models.user import User

DEFAULT_COUNTRY_CODE = "61"


# Normalise common local and international spellings to E.164 (+<country><number>).
def to_e164(raw: str | None, country_code: str = DEFAULT_COUNTRY_CODE) -> str | None:
    if not raw:
        return None
    digits = re.sub(r"\D", "", raw)
    if not digits:
        return None
    if raw.strip().startswith("+"):
        return "+" + digits
    if digits.startswith("00"):
        return "+" + digits[2:]
    if digits.startswith("0"):
        return f"+{country_code}{digits[1:]}"
    if digits.startswith(country_code):
        return "+" + digits
    return f"+{country_code}{digits}"


if __name__ == "__main__":
    # One-off maintenance script so the SMS channel always sees E.164 numbers.
    session = SessionLocal()
    try:
        users = session.query(User).all()
        changed = 0
        for user in users:
            normalised = to_e164(user.phone)
            if normalised != user.phone:
                user.phone = normalised
                changed += 1
        session.commit()
        print(f"Normalised phone numbers for {changed} of {len(users)} users to E.164.")
    finally:
        session.close()
