import pytest
from prometheus_client import REGISTRY
from sqlalchemy import text


def _requests_total(method: str, endpoint: str, status: int) -> float:
    labels = {"method": method, "endpoint": endpoint, "status": str(status)}
    return REGISTRY.get_sample_value("http_requests_total", labels) or 0.0


def _durations_observed(method: str, endpoint: str) -> float:
    labels = {"method": method, "endpoint": endpoint}
    return REGISTRY.get_sample_value("http_request_duration_seconds_count", labels) or 0.0


def _orders_created() -> float:
    return REGISTRY.get_sample_value("orders_created_total") or 0.0


@pytest.mark.parametrize(
    ("method", "path", "kwargs", "status"),
    [
        ("GET", "/", {}, 200),
        ("POST", "/checkout", {"data": {"product_id": "1", "quantity": "2"}}, 303),
        ("GET", "/checkout", {}, 405),
        ("POST", "/checkout", {"data": {"product_id": "9999", "quantity": "1"}}, 404),
        ("POST", "/checkout", {"data": {"product_id": "x", "quantity": "1"}}, 400),
        ("GET", "/success", {"params": {"order_id": "9999"}}, 404),
        ("GET", "/health", {}, 200),
    ],
)
async def test_each_request_is_recorded_exactly_once(api_client, method, path, kwargs, status) -> None:
    counted_before = _requests_total(method, path, status)
    observed_before = _durations_observed(method, path)

    resp = await api_client.request(method, path, **kwargs)
    assert resp.status_code == status

    assert _requests_total(method, path, status) == counted_before + 1
    assert _durations_observed(method, path) == observed_before + 1


async def test_success_page_is_recorded_once(api_client) -> None:
    checkout = await api_client.post("/checkout", data={"product_id": "3", "quantity": "1"})
    location = checkout.headers["location"]

    counted_before = _requests_total("GET", "/success", 200)
    observed_before = _durations_observed("GET", "/success")

    page = await api_client.get(location)
    assert page.status_code == 200

    assert _requests_total("GET", "/success", 200) == counted_before + 1
    assert _durations_observed("GET", "/success") == observed_before + 1


async def test_orders_created_counts_only_successful_checkouts(api_client) -> None:
    before = _orders_created()

    await api_client.post("/checkout", data={"product_id": "9999", "quantity": "1"})
    await api_client.get("/checkout")
    assert _orders_created() == before

    resp = await api_client.post("/checkout", data={"product_id": "1", "quantity": "1"})
    assert resp.status_code == 303
    assert _orders_created() == before + 1


async def test_metrics_endpoint_exposes_prometheus_text(api_client) -> None:
    await api_client.get("/")

    resp = await api_client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "http_requests_total" in resp.text
    assert "http_request_duration_seconds_bucket" in resp.text
    assert "orders_created_total" in resp.text


async def test_metrics_endpoint_is_not_counted(api_client) -> None:
    before = _durations_observed("GET", "/metrics")

    await api_client.get("/metrics")
    await api_client.get("/metrics")

    assert _durations_observed("GET", "/metrics") == before


async def test_server_error_is_recorded_exactly_once(api_client, store) -> None:
    with store.engine.begin() as conn:
        conn.execute(text("DROP TABLE products"))

    counted_before = _requests_total("GET", "/", 500)
    observed_before = _durations_observed("GET", "/")

    resp = await api_client.get("/")
    assert resp.status_code == 500

    assert _requests_total("GET", "/", 500) == counted_before + 1
    assert _durations_observed("GET", "/") == observed_before + 1


async def test_unmatched_paths_share_one_endpoint_label(api_client) -> None:
    counted_before = _requests_total("GET", "<unmatched>", 404)

    for path in ("/no-such-page", "/cart/42", "/favicon.ico"):
        resp = await api_client.get(path)
        assert resp.status_code == 404

    assert _requests_total("GET", "<unmatched>", 404) == counted_before + 3
    assert _requests_total("GET", "/no-such-page", 404) == 0.0
    assert _requests_total("GET", "/cart/42", 404) == 0.0
