#!/usr/bin/env python3
"""
Admin HTTP API for the nominee importer.

Routes:
- GET  /api/health
- POST /api/admin/nominees/import                 run an import, return its summary
- GET  /api/admin/categories/<id>/nominees?year=   list a category's nominees

Admin routes require the X-Admin-Token header to match ADMIN_API_TOKEN.
"""

import hmac
import logging
import os
from datetime import datetime
from functools import wraps

from dotenv import load_dotenv
from flask import Flask, current_app, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from awardpool.contracts.import_summary import validate_import_summary
from awardpool.ingestion.source_types import SOURCE_KINDS, Source
from awardpool.pipeline.reconcile import ImportAbortedError, ReconciliationEngine
from awardpool.storage.postgres_repo import PostgresNomineeStore
from awardpool.storage.postgres_schema import ensure_postgres_schema
from awardpool.storage.store_types import StoreError
from cors_config import configure_cors

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_PG_DSN = "dbname=awardpool user=awardpool password=awardpool host=localhost port=5432"


def require_admin(f):
    """Decorator to require the admin API token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("ADMIN_API_TOKEN") or ""
        provided = request.headers.get("X-Admin-Token") or ""
        if not expected:
            return jsonify({'error': 'Admin API disabled'}), 403
        if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
            return jsonify({'error': 'Unauthorized access'}), 403
        return f(*args, **kwargs)
    return decorated_function


def handle_store_error(f):
    """Decorator for handling store errors gracefully"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except StoreError as e:
            logger.error(f"Store error in {f.__name__}: {e}")
            return jsonify({'error': 'Database temporarily unavailable', 'retry': True}), 503
    return decorated_function


def _parse_sources(items):
    """Sources from a JSON body: strings or {url, kind, keywords, category_id}."""
    out = []
    for it in items:
        if isinstance(it, str):
            out.append(Source(url=it.strip()))
            continue
        if not isinstance(it, dict) or not str(it.get('url') or '').strip():
            raise ValueError('each source needs a url')
        kind = it.get('kind') or 'html-article'
        if kind not in SOURCE_KINDS:
            raise ValueError(f'unknown source kind: {kind}')
        category_id = it.get('category_id')
        keywords = it.get('keywords') or []
        if isinstance(keywords, str):
            keywords = [keywords]
        out.append(Source(
            url=str(it['url']).strip(),
            kind=kind,
            keywords=tuple(str(k) for k in keywords),
            name=it.get('name'),
            language=it.get('language'),
            category_id=int(category_id) if category_id is not None else None,
        ))
    return out


def create_app(store=None, *, engine_factory=None):
    app = Flask(__name__)
    app.config['ADMIN_API_TOKEN'] = os.environ.get('ADMIN_API_TOKEN', '').strip()
    configure_cors(app)

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=["1000 per day", "100 per hour"],
        storage_uri="memory://",
    )
    limiter.init_app(app)

    if store is None:
        pg_dsn = os.environ.get('PG_DSN', DEFAULT_PG_DSN)
        ensure_postgres_schema(pg_dsn)
        store = PostgresNomineeStore(pg_dsn)
    app.config['NOMINEE_STORE'] = store
    make_engine = engine_factory or (lambda s: ReconciliationEngine(s))

    @app.route('/api/health')
    @limiter.exempt
    def health_check():
        """API health check endpoint"""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now().isoformat(),
        })

    @app.route('/api/admin/nominees/import', methods=['POST'])
    @limiter.limit("5 per minute")
    @require_admin
    @handle_store_error
    def import_nominees():
        """Run one import over the given (or configured) sources."""
        data = request.get_json(silent=True) or {}
        try:
            if data.get('sources'):
                sources = _parse_sources(data['sources'])
            else:
                sources = store.list_sources()
            category_id = data.get('category_id')
            target = int(category_id) if category_id not in (None, '') else None
        except (TypeError, ValueError) as e:
            return jsonify({'error': str(e)}), 400

        if not sources:
            return jsonify({'error': 'No sources configured'}), 400

        try:
            summary = make_engine(store).run(sources, target)
        except ImportAbortedError as e:
            logger.error(f"[import] aborted: {e}")
            status = 404 if target is not None and 'not found' in str(e) else 500
            return jsonify({'error': str(e)}), status

        payload = summary.to_dict()
        errors = validate_import_summary(payload)
        if errors:
            logger.warning(f"[import] summary failed validation: {errors}")
        return jsonify(payload)

    @app.route('/api/admin/categories/<int:category_id>/nominees')
    @require_admin
    @handle_store_error
    def category_nominees(category_id):
        """List nominees of a category for a ceremony year."""
        year = request.args.get('year')
        if year:
            try:
                year = int(year)
            except ValueError:
                return jsonify({'error': 'Invalid type for parameter year'}), 400
        else:
            try:
                year = ReconciliationEngine(store).active_year()
            except ImportAbortedError as e:
                return jsonify({'error': str(e)}), 500

        category = store.get_category(category_id)
        if category is None:
            return jsonify({'error': 'Category not found'}), 404
        nominees = store.list_nominees(category_id, year)
        return jsonify({
            'category': {
                'id': category.id,
                'name': category.name,
                'ceremony_year': category.ceremony_year,
                'max_nominees': category.max_nominees,
                'is_active': category.is_active,
            },
            'ceremony_year': year,
            'nominees': [
                {
                    'id': n.id,
                    'name': n.name,
                    'meta': n.meta,
                    'is_winner': n.is_winner,
                }
                for n in nominees
            ],
        })

    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5002))
    debug = os.environ.get('FLASK_ENV') == 'development'

    logger.info(f"Starting nominee admin API on port {port}")
    create_app().run(
        host='0.0.0.0',
        port=port,
        debug=debug,
        threaded=True
    )
