from modules.core.models import OutboxEvent


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_health_check_reports_outbox_backlog(self, client, place_order, medicine_x):
        place_order((medicine_x, 1))
        place_order((medicine_x, 2))

        data = client.get("/health").json()

        assert data["services"]["database"]["pending_events"] == 2
        assert OutboxEvent.objects.pending().count() == 2

    def test_health_check_needs_no_authentication(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
