import os
from dataclasses import dataclass
from importlib import resources
from dotenv import load_dotenv

load_dotenv()

DEFAULT_SEED_FILE = str(resources.files("seed_data").joinpath("books.json"))


@dataclass
class Settings:
    # Storage settings
    data_file: str = os.getenv("LIBRARY_DATA_FILE", "library.db")
    seed_file: str = os.getenv("LIBRARY_SEED_FILE", DEFAULT_SEED_FILE)

    # Defaults for newly added books
    placeholder_price: str = os.getenv("PLACEHOLDER_PRICE", "$0.00")
    placeholder_image: str = os.getenv(
        "PLACEHOLDER_IMAGE",
        "https://via.placeholder.com/120x170?text=No+Image"
    )

    # IT Book Store API settings (similar books lookup)
    itbook_api_url: str = os.getenv("ITBOOK_API_URL", "https://api.itbook.store/1.0")
    itbook_timeout: float = float(os.getenv("ITBOOK_TIMEOUT", "10"))
    similar_books_limit: int = int(os.getenv("SIMILAR_BOOKS_LIMIT", "6"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Book Catalog")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")


settings = Settings()
