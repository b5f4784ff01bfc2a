"""
Prometheus metrics blueprint.

Exposes /metrics with HTTP request metrics and store counters (checkouts,
stock reservations, order transitions, payment signature checks).
Restrict this endpoint to the internal network or the Prometheus server.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share metrics through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _metric_registry = None
else:
    registry = REGISTRY
    _metric_registry = REGISTRY

# HTTP
http_requests_total = Counter(
    'farmstore_http_requests_total',
    'HTTP requests by route template and status class',
    ['method', 'route', 'status_class'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'farmstore_http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'route'],
    registry=_metric_registry,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'farmstore_http_requests_in_flight',
    'HTTP requests currently being served',
    registry=_metric_registry,
    multiprocess_mode='livesum'
)

# Checkout
orders_placed_total = Counter(
    'orders_placed_total',
    'Orders successfully placed',
    ['payment_method'],
    registry=_metric_registry
)

checkout_failures_total = Counter(
    'checkout_failures_total',
    'Checkouts rejected before an order was created',
    ['reason'],
    registry=_metric_registry
)

checkout_duration_seconds = Histogram(
    'checkout_duration_seconds',
    'Time spent placing an order, successful or not',
    registry=_metric_registry,
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

# Stock, lifecycle, payments
stock_reservations_total = Counter(
    'stock_reservations_total',
    'Conditional stock decrements by outcome',
    ['outcome'],
    registry=_metric_registry
)

order_transitions_total = Counter(
    'order_transitions_total',
    'Order status changes by target status',
    ['status'],
    registry=_metric_registry
)

payment_signature_checks_total = Counter(
    'payment_signature_checks_total',
    'Gateway signature verifications',
    ['kind', 'result'],
    registry=_metric_registry
)


def _route_label() -> str:
    # Route template, e.g. /api/orders/<int:order_id>/rate-product
    return request.url_rule.rule if request.url_rule else 'unmatched'


def setup_metrics_instrumentation(app):
    """Register request hooks that record HTTP metrics."""

    @app.before_request
    def before_request_metrics():
        g._metrics_started = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def after_request_metrics(response):
        started = g.get('_metrics_started')
        if started is not None:
            route = _route_label()
            http_request_duration_seconds.labels(request.method, route).observe(time.perf_counter() - started)
            http_requests_total.labels(request.method, route, f"{response.status_code // 100}xx").inc()
        return response

    @app.teardown_request
    def teardown_request_metrics(exception=None):
        # Also runs when the view raised
        if g.pop('_metrics_started', None) is not None:
            http_requests_in_flight.dec()


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus scrape endpoint (not authenticated)."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
