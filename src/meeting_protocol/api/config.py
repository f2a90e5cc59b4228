"""Configuration for the protocol FastAPI service."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from meeting_protocol.models.company import CompanyProfile


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    # Auth
    WORKER_API_KEY: str

    # Document
    DISPLAY_TIMEZONE: str = "Asia/Tashkent"

    # Pipeline
    MAX_CONCURRENT_RENDERS: int = 8
    HONOR_ITEM_THRESHOLDS: bool = False

    # Management company
    COMPANY_NAME: str = "OOO KAMIZO"
    COMPANY_ADDRESS: str = "г. Ташкент, Яшнобадский район, ул. Махтумкули, дом 93/3"
    COMPANY_BANK: str = "«Ориент Финанс» ЧАКБ Миробад филиал"
    COMPANY_ACCOUNT: str = "20208000805307918001"
    COMPANY_INN: str = "307928888"
    COMPANY_OKED: str = "81100"
    COMPANY_MFO: str = "01071"

    def company_profile(self) -> CompanyProfile:
        return CompanyProfile(
            name=self.COMPANY_NAME,
            address=self.COMPANY_ADDRESS,
            bank=self.COMPANY_BANK,
            account=self.COMPANY_ACCOUNT,
            inn=self.COMPANY_INN,
            oked=self.COMPANY_OKED,
            mfo=self.COMPANY_MFO,
        )


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
