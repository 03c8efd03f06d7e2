import os
from dotenv import load_dotenv
load_dotenv()
# ---- Alchemy ----
ALCHEMY_API_KEY = os.environ.get("ALCHEMY_API_KEY")
ALCHEMY_URL_TEMPLATE = os.environ.get(
    "ALCHEMY_URL_TEMPLATE", "https://{network}.g.alchemy.com/v2/{api_key}"
)

ALCHEMY_REQUESTS_PER_SEC = float(os.environ.get("ALCHEMY_REQUESTS_PER_SEC", "10"))
ALCHEMY_TIMEOUT_SEC = float(os.environ.get("ALCHEMY_TIMEOUT_SEC", "15"))
ALCHEMY_MAX_RETRIES = int(os.environ.get("ALCHEMY_MAX_RETRIES", "3"))

DEFAULT_CHAIN = os.environ.get("DEFAULT_CHAIN", "eth")

# ---- Caches ----
RESULT_CACHE_TTL_SEC = int(os.environ.get("RESULT_CACHE_TTL_SEC", "900"))
BLOCK_CACHE_TTL_SEC = int(os.environ.get("BLOCK_CACHE_TTL_SEC", "86400"))
BLOCK_CACHE_CHECK_PERIOD_SEC = int(os.environ.get("BLOCK_CACHE_CHECK_PERIOD_SEC", "600"))

# ---- Block search ----
RESOLVER_MAX_ITERATIONS = 30

# ---- Transfer fetching ----
FETCH_GROUP_SIZE = 3
FETCH_MAX_GROUPS = 5
FETCH_MAX_RECORDS = 3000
FETCH_PAGE_SIZE = 1000
FETCH_BASE_DELAY_SEC = 0.2
FETCH_MAX_EXTRA_DELAY_SEC = 0.3

# ---- Timestamp enrichment ----
ENRICH_CHUNK_SIZE = 30
ENRICH_CONCURRENCY = 5
ENRICH_GROUP_DELAY_SEC = 0.05
ENRICH_CHUNK_DELAY_SEC = 0.15
RECOVERY_MAX_TRANSFERS = int(os.environ.get("RECOVERY_MAX_TRANSFERS", "50"))

# ---- Pipeline ----
PIPELINE_BATCH_SIZE = 1000
PIPELINE_BATCH_DELAY_SEC = 0.2
TOP_TRADERS = int(os.environ.get("TOP_TRADERS", "100"))
MAX_TX_PER_NODE = 50

# ---- Entry points ----
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
API_PORT = int(os.environ.get("PORT", "3000"))
