"""
MODULE OVERVIEW:
Application-wide configuration using Pydantic Settings.
Both the server and the client read their timings from here.

WHAT IS HAPPENING HERE:
The tick interval, the shutdown grace window and the client's reconnect delay
are protocol timings. The grace window must stay longer than one tick,
otherwise the server stops before every open stream has written its farewell
frame.
"""
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # Server stream
    SSE_PATH: str = "/sse"
    TICK_INTERVAL_S: float = 1.0
    SHUTDOWN_GRACE_S: float = 1.2

    # Client
    RECONNECT_DELAY_S: float = 2.0
    CONNECT_TIMEOUT_S: float = 5.0
    READ_TIMEOUT_S: float = 600.0

    @property
    def default_stream_url(self) -> str:
        return f"http://localhost:{self.PORT}{self.SSE_PATH}"

    class Config:
        env_file = ".env"
        # Tolerate missing env vars to allow easy out-of-the-box execution
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()
