#!/usr/bin/env python3
"""
Daily AI News Backend
Flask API server that caches the daily AI headline and serves it to the read-aloud page
"""

import logging
from datetime import datetime

from flask import Flask, request, jsonify, send_from_directory
from flask_cors import CORS

import config
from cache_stores import create_store
from exceptions import ConfigurationError, NewsAppError, StoreUnavailableError
from news_service import NewsService
from rotation import DEFAULT_REGION, RotatingNewsResolver
from subscriber_store import SubscriberStore
from subscriber_validator import validate_subscriber
from tasks import BackgroundTasks

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("daily-news")

# Initialize Flask app
app = Flask(__name__, static_folder='static')
app.config['SECRET_KEY'] = config.SECRET_KEY
CORS(app, supports_credentials=True)

# Initialize services
news_service = NewsService.from_config()
store = create_store(config.CACHE_BACKEND)
background = BackgroundTasks() if config.CACHE_WRITE_MODE == 'background' else None
rotating_resolver = RotatingNewsResolver(
    store, news_service.fetch_news,
    period_days=config.ROTATION_PERIOD_DAYS,
    background=background,
)
daily_resolver = RotatingNewsResolver(
    store, news_service.fetch_news,
    period_days=config.DAILY_PERIOD_DAYS,
    background=background,
    key_prefix='today_news_',
    meta_prefix='today_meta_',
)
subscriber_store = SubscriberStore.from_config()
cache_stats = {"hits": 0, "misses": 0}


def _record(result):
    cache_stats["hits" if result.from_cache else "misses"] += 1
    return result


# Routes
@app.route('/')
def serve_index():
    """Serve the main HTML page"""
    return send_from_directory(app.static_folder, 'index.html')


@app.route('/subscribe')
def serve_subscribe():
    """Serve the sign-up page"""
    return send_from_directory(app.static_folder, 'subscribe.html')


@app.route('/api/news', methods=['GET'])
def get_daily_news():
    """Today's global headline, cached for one day"""
    try:
        result = _record(daily_resolver.get_news(DEFAULT_REGION))
    except NewsAppError as e:
        logger.error(f"API error: {e}")
        return jsonify({"error": str(e) or "Failed to fetch news"}), 500
    except Exception:
        logger.exception("Unexpected error while serving news")
        return jsonify({"error": "Failed to fetch news"}), 500

    return jsonify({
        "newsText": result.news.news_text,
        "audioUrl": result.news.audio_url,
        "fromCache": result.from_cache,
    })


@app.route('/api/ainews', methods=['GET'])
def get_regional_news():
    """Regional headline, cached for one rotation window"""
    try:
        result = _record(rotating_resolver.get_news(request.args.get('region')))
    except NewsAppError as e:
        logger.error(f"API error: {e}")
        return jsonify({"error": str(e) or "Failed to fetch news"}), 500
    except Exception:
        logger.exception("Unexpected error while serving news")
        return jsonify({"error": "Failed to fetch news"}), 500

    return jsonify({
        "message": result.news.news_text,
        "region": result.region,
        "cacheKey": result.active.key,
        "activeDate": result.active.date.isoformat(),
        "fromCache": result.from_cache,
    })


@app.route('/api/subscribe', methods=['POST'])
def subscribe():
    """Capture a name/email/phone sign-up"""
    data = request.get_json(silent=True) or {}
    validation = validate_subscriber(data)
    if not validation['is_valid']:
        return jsonify({"error": "Name and email are required", "details": validation['errors']}), 400

    try:
        subscriber = subscriber_store.create(validation['subscriber'])
    except ConfigurationError as e:
        logger.warning(f"Subscription unavailable: {e}")
        return jsonify({"error": "Subscriptions are not available"}), 503
    except StoreUnavailableError as e:
        logger.error(f"Subscription error: {e}")
        return jsonify({"error": "Internal Server Error"}), 500
    except Exception:
        logger.exception("Unexpected subscription error")
        return jsonify({"error": "Internal Server Error"}), 500

    return jsonify({"success": True, "data": subscriber.to_json()})


@app.route('/api/cron', methods=['GET'])
def run_cron():
    """Scheduled job: log the active global headline and the subscriber list"""
    logger.info("CRON: starting scheduled job")

    news = rotating_resolver.peek(DEFAULT_REGION)
    if news:
        logger.info(f"NEWS ({news.generated_at}): {news.news_text}")
    else:
        logger.info("NEWS: no cached news for the active window")

    try:
        subscribers = subscriber_store.list_recent()
    except NewsAppError as e:
        logger.error(f"CRON error: {e}")
        return jsonify({"error": str(e) or "Cron job failed"}), 500
    except Exception:
        logger.exception("Unexpected cron error")
        return jsonify({"error": "Cron job failed"}), 500

    if subscribers:
        logger.info(f"Found {len(subscribers)} subscribers:")
        for index, sub in enumerate(subscribers, start=1):
            logger.info(f"   {index}. {sub.name} | {sub.email} | {sub.phone or 'No Phone'}")
    else:
        logger.info("CRON: no subscribers found")

    return jsonify({
        "success": True,
        "message": "Cron job executed successfully",
        "newsFound": news is not None,
        "subscriberCount": len(subscribers),
    })


@app.route('/api/cache/clear', methods=['POST'])
def clear_cache():
    """Clear the cache"""
    if store is None or not hasattr(store, 'clear'):
        return jsonify({"error": "Cache backend cannot be cleared from here"}), 400
    try:
        store.clear()
    except StoreUnavailableError as e:
        return jsonify({"error": f"Failed to clear cache: {e}"}), 500
    cache_stats["hits"] = 0
    cache_stats["misses"] = 0
    return jsonify({"message": "Cache cleared successfully"})


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "cache_backend": store.name if store is not None else "none",
        "news_provider": news_service.provider,
        "cache_stats": cache_stats
    })


if __name__ == '__main__':
    logger.info(f"Starting Daily AI News Backend on port {config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")
    logger.info(f"Frontend will be accessible at: http://localhost:{config.PORT}")

    app.run(host='0.0.0.0', port=config.PORT, debug=config.DEBUG)
