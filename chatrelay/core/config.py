# chatrelay/core/config.py
import os
from typing import List
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - HOST / PORT where uvicorn binds the relay
        - CORS_ALLOW_ORIGINS comma separated list of allowed origins ("*" for any)
        - OUTBOUND_QUEUE_SIZE max pending outbound events per connection (0 = unbounded)
    """

    # Load environment variables from the .env file
    load_dotenv()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    CORS_ALLOW_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    OUTBOUND_QUEUE_SIZE: int = int(os.getenv("OUTBOUND_QUEUE_SIZE", "256"))

settings = Settings()
