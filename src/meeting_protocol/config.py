"""
Configuration management for the meeting protocol generator.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from .models.company import CompanyProfile

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)

SUPPORTED_LOCALES = ('ru', 'uz')


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Configuration settings loaded from environment."""

    # Document
    PROTOCOL_LOCALE: str = os.getenv('PROTOCOL_LOCALE', 'ru')
    DISPLAY_TIMEZONE: str = os.getenv('DISPLAY_TIMEZONE', 'Asia/Tashkent')

    # Pipeline
    MAX_CONCURRENT_RENDERS: int = int(os.getenv('MAX_CONCURRENT_RENDERS', '8'))
    HONOR_ITEM_THRESHOLDS: bool = _env_flag('HONOR_ITEM_THRESHOLDS')
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')

    # Management company shown in the company QR block
    COMPANY_NAME: str = os.getenv('COMPANY_NAME', 'OOO KAMIZO')
    COMPANY_ADDRESS: str = os.getenv(
        'COMPANY_ADDRESS',
        'г. Ташкент, Яшнобадский район, ул. Махтумкули, дом 93/3',
    )
    COMPANY_BANK: str = os.getenv('COMPANY_BANK', '«Ориент Финанс» ЧАКБ Миробад филиал')
    COMPANY_ACCOUNT: str = os.getenv('COMPANY_ACCOUNT', '20208000805307918001')
    COMPANY_INN: str = os.getenv('COMPANY_INN', '307928888')
    COMPANY_OKED: str = os.getenv('COMPANY_OKED', '81100')
    COMPANY_MFO: str = os.getenv('COMPANY_MFO', '01071')

    @classmethod
    def company_profile(cls) -> CompanyProfile:
        """Build the company profile from the COMPANY_* settings."""
        return CompanyProfile(
            name=cls.COMPANY_NAME,
            address=cls.COMPANY_ADDRESS,
            bank=cls.COMPANY_BANK,
            account=cls.COMPANY_ACCOUNT,
            inn=cls.COMPANY_INN,
            oked=cls.COMPANY_OKED,
            mfo=cls.COMPANY_MFO,
        )

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of configuration keys holding invalid values
        """
        invalid = []
        if cls.PROTOCOL_LOCALE not in SUPPORTED_LOCALES:
            invalid.append('PROTOCOL_LOCALE')
        if cls.MAX_CONCURRENT_RENDERS < 1:
            invalid.append('MAX_CONCURRENT_RENDERS')
        if not cls.COMPANY_NAME:
            invalid.append('COMPANY_NAME')
        return invalid


# Singleton config instance
config = Config()
