"""Centralised application settings loaded from environment / .env file."""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Pricing
    base_fare: float = 50.0  # INR
    rate_per_km: float = 15.0  # INR / km
    average_speed_kmh: float = 30.0

    # Dispatch
    dispatch_delay_min_seconds: float = 2.0
    dispatch_delay_max_seconds: float = 5.0
    max_wait_seconds: float = 300.0  # 0 disables expiry of unmatched trips
    pending_sweep_interval_seconds: float = 5.0

    # Realtime bus
    bus_jitter_min_seconds: float = 0.010
    bus_jitter_max_seconds: float = 0.030
    location_interval_seconds: float = 2.0
    h3_resolution: int = 7  # ~5.16 km² hexagons

    # Simulation
    seed_on_startup: bool = True
    simulate_locations: bool = True
    city_center_lat: float = 28.6139  # New Delhi
    city_center_lng: float = 77.2090

    # Redis relay
    redis_url: str = "redis://localhost:6379/0"
    redis_relay_enabled: bool = False
    redis_channel_prefix: str = "ridehail"

    # API
    rate_limit: str = "100/minute"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_windows(self) -> "Settings":
        windows = [
            ("dispatch_delay", self.dispatch_delay_min_seconds, self.dispatch_delay_max_seconds),
            ("bus_jitter", self.bus_jitter_min_seconds, self.bus_jitter_max_seconds),
        ]
        for name, low, high in windows:
            if low < 0 or high < low:
                raise ValueError(f"{name} window must satisfy 0 <= min <= max")
        if self.max_wait_seconds < 0:
            raise ValueError("max_wait_seconds must be non-negative")
        return self


settings = Settings()
