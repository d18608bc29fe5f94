from pydantic import BaseModel
import os

class Settings(BaseModel):
    APP_ENV: str = os.getenv("APP_ENV", "dev")
    AA_FRONTEND_ORIGIN: str = os.getenv("AA_FRONTEND_ORIGIN", "http://localhost:5173")
    AA_SUBMIT_URL: str = os.getenv("AA_SUBMIT_URL", "https://formspree.io/f/movyabey")
    AA_SUBMIT_TIMEOUT_S: float = float(os.getenv("AA_SUBMIT_TIMEOUT_S", "15"))
    AA_BASE_LAT: float = float(os.getenv("AA_BASE_LAT", "34.0489"))
    AA_BASE_LON: float = float(os.getenv("AA_BASE_LON", "-84.2938"))
    AA_TIMEZONE: str = os.getenv("AA_TIMEZONE", "America/New_York")
    AA_SUPPORT_PHONE: str = os.getenv("AA_SUPPORT_PHONE", "678-780-4623")
    AA_LOG_LEVEL: str = os.getenv("AA_LOG_LEVEL", "INFO")
    AA_SESSION_TTL_S: float = float(os.getenv("AA_SESSION_TTL_S", "3600"))

settings = Settings()
