"""
Config settings for the daily AI news app.
"""
import os

# Flask Configuration
SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-change-in-production')
DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'
PORT = int(os.environ.get('PORT', 8001))
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

# Cache Configuration
CACHE_BACKEND = os.environ.get('CACHE_BACKEND', 'memory').lower()  # memory | file | edge | redis | none
CACHE_TTL = int(os.environ.get('CACHE_TTL', 8 * 24 * 3600))  # outlives one rotation window
MAX_CACHE_SIZE = 1000
CACHE_FILE_PATH = os.environ.get('CACHE_FILE_PATH', os.path.join('data', 'news_cache.json'))
CACHE_WRITE_MODE = os.environ.get('CACHE_WRITE_MODE', 'sync').lower()  # sync | background
ROTATION_PERIOD_DAYS = int(os.environ.get('ROTATION_PERIOD_DAYS', 7))
DAILY_PERIOD_DAYS = 1

# Edge Config (managed key-value store)
EDGE_CONFIG = os.environ.get('EDGE_CONFIG')  # read connection string
EDGE_CONFIG_ID = os.environ.get('EDGE_CONFIG_ID')
VERCEL_API_TOKEN = os.environ.get('VERCEL_API_TOKEN')
VERCEL_API_BASE_URL = "https://api.vercel.com/v1"

# Redis
REDIS_URL = os.environ.get('REDIS_URL')
REDIS_KEY_PREFIX = os.environ.get('REDIS_KEY_PREFIX', '')

# News provider Configuration
NEWS_PROVIDER = os.environ.get('NEWS_PROVIDER', 'perplexity').lower()  # perplexity | gemini
PERPLEXITY_API_KEY = os.environ.get('PERPLEXITY_API_KEY')
PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
PERPLEXITY_MODEL = os.environ.get('PERPLEXITY_MODEL', 'sonar')
GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')
REQUEST_TIMEOUT = float(os.environ.get('REQUEST_TIMEOUT', 30))  # seconds

# Database Configuration
MONGODB_URI = os.environ.get('MONGODB_URI')
MONGODB_DB = os.environ.get('MONGODB_DB', 'daily_news')
SUBSCRIBER_COLLECTION = 'subscribers'

# Prompts
GLOBAL_SYSTEM_PROMPT = """
You are a news presenter. Return ONE brief, engaging news describing ONE most recent important
AI news headline of today. Ensure the news is around AI and Human collaboration.
Max 80 words. Output plain text only.
"""

GLOBAL_USER_PROMPT = "What is the most important AI news of today?"

REGIONAL_SYSTEM_PROMPT = """
You are a news presenter. Return a brief, engaging news describing one of the most recent important
AI news specifically related to or impacting the region "{region}". If there is no specific regional
news, provide global AI news relevant to that region. Ensure the news is around AI and Human
collaboration. Max 100 words. Output plain text only.
"""

REGIONAL_USER_PROMPT = "What is the most important AI news for {region} today?"
