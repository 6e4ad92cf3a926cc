"""Donor confirmation codes.

A donor code is ``DN`` followed by the issue date (``YYMMDD``), the issue hour
(``HH``) and two random digits, e.g. ``DN2601051473``. Pickup codes are a
separate 8-character namespace handled in :mod:`blood.services.pickups`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

DONOR_CODE_LENGTH = 12
DONOR_CODE_PATTERN = re.compile(r'^DN(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})$')


class InvalidDonorCode(ValueError):
    pass


@dataclass(frozen=True)
class DonorCode:
    value: str
    issued_on: date
    issued_hour: int
    suffix: str

    def __str__(self):
        return self.value


def normalize_donor_code(code: str) -> str:
    return (code or '').strip().upper()


def parse_donor_code(code: str) -> DonorCode:
    value = normalize_donor_code(code)
    if len(value) != DONOR_CODE_LENGTH:
        raise InvalidDonorCode(f'Donor code must be exactly {DONOR_CODE_LENGTH} characters.')
    match = DONOR_CODE_PATTERN.match(value)
    if not match:
        raise InvalidDonorCode('Donor code must look like DNYYMMDDHHRR.')
    yy, mm, dd, hh, suffix = match.groups()
    try:
        issued_on = date(2000 + int(yy), int(mm), int(dd))
    except ValueError:
        raise InvalidDonorCode('Donor code contains an invalid date.')
    if int(hh) > 23:
        raise InvalidDonorCode('Donor code contains an invalid hour.')
    return DonorCode(value=value, issued_on=issued_on, issued_hour=int(hh), suffix=suffix)


def is_donor_code(code: str) -> bool:
    try:
        parse_donor_code(code)
    except InvalidDonorCode:
        return False
    return True
