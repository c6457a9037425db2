import os
from dotenv import load_dotenv

# Chargement des variables d'environnement
load_dotenv()

SERVICE_NAME = "products-service"

PORT = int(os.getenv("PORT", 8001))

# Base de données (SQLite par défaut, toute URL SQLAlchemy acceptée)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./products.db")
DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", 5))

# Deadline appliquée à chaque appel du service
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", 10))

DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", 20))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_SINK = os.getenv("LOG_SINK", "logs.json")
