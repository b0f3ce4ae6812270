# app/services/qr_code.py

import logging
from typing import Literal, Optional
from urllib.parse import quote

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class QrConfig(BaseModel):
    service: Literal["qrserver", "google-charts"] = "qrserver"
    api_key: Optional[str] = None
    size: int = 300
    format: Literal["png", "svg"] = "png"
    color: str = "000000"
    background_color: str = "ffffff"
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> "QrConfig":
        return cls(
            service=settings.QR_SERVICE,
            api_key=settings.QR_API_KEY,
            size=settings.QR_SIZE,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )


class QrCodeService:
    def __init__(self, config: QrConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def generate_qr_code_url(self, data: str) -> str:
        encoded = quote(data, safe="")
        size = f"{self.config.size}x{self.config.size}"
        if self.config.service == "qrserver":
            return (
                f"https://api.qrserver.com/v1/create-qr-code/?data={encoded}&size={size}"
                f"&format={self.config.format}&color={self.config.color}&bgcolor={self.config.background_color}"
            )
        if self.config.service == "google-charts":
            return f"https://chart.googleapis.com/chart?cht=qr&chs={size}&chl={encoded}"
        raise ValueError(f"Unsupported QR code service: {self.config.service}")

    def fetch_image(self, data: str) -> bytes:
        """Download the rendered QR code. Raises ``requests.RequestException`` on failure."""
        url = self.generate_qr_code_url(data)
        try:
            response = self.session.get(url, timeout=self.config.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"QrCodeService error: {e}")
            raise
        return response.content
