"""
Integration tests for the API endpoints.
"""

from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient


class TestQueueAPI:
    """Integration tests for queue API endpoints."""

    @pytest.fixture
    def base_url(self) -> str:
        return f"/v1/queues/api-{uuid4().hex[:8]}"

    @pytest_asyncio.fixture
    async def claimed(self, client: AsyncClient, base_url: str) -> dict:
        """Add a message and claim it."""
        await client.post(f"{base_url}/messages", json={"payload": {"test": True}})
        response = await client.post(f"{base_url}/claim")
        return response.json()

    @pytest.mark.asyncio
    async def test_add_single_message(self, client: AsyncClient, base_url: str):
        """Test adding one message."""
        response = await client.post(
            f"{base_url}/messages",
            json={"payload": {"message": "hello"}},
        )

        assert response.status_code == 201
        assert len(response.json()["ids"]) == 1

    @pytest.mark.asyncio
    async def test_add_list_payload_is_one_message(self, client: AsyncClient, base_url: str):
        """Test that a list under "payload" is a single message."""
        response = await client.post(f"{base_url}/messages", json={"payload": [1, 2, 3]})
        assert len(response.json()["ids"]) == 1

        claimed = (await client.post(f"{base_url}/claim")).json()
        assert claimed["payload"] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_add_batch(self, client: AsyncClient, base_url: str):
        """Test adding a batch of messages."""
        response = await client.post(
            f"{base_url}/messages",
            json={"payloads": ["a", "b", "c"]},
        )

        assert response.status_code == 201
        assert len(response.json()["ids"]) == 3

    @pytest.mark.asyncio
    async def test_add_empty_batch_rejected(self, client: AsyncClient, base_url: str):
        """Test that an empty batch is rejected."""
        response = await client.post(f"{base_url}/messages", json={"payloads": []})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_add_requires_payload(self, client: AsyncClient, base_url: str):
        """Test that a body without payloads is rejected."""
        response = await client.post(f"{base_url}/messages", json={"delay": 1})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_add_negative_delay_rejected(self, client: AsyncClient, base_url: str):
        response = await client.post(
            f"{base_url}/messages",
            json={"payload": "x", "delay": -1},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_message(self, client: AsyncClient, base_url: str):
        """Test getting a message and its state."""
        added = await client.post(f"{base_url}/messages", json={"payload": {"n": 1}})
        message_id = added.json()["ids"][0]

        response = await client.get(f"{base_url}/messages/{message_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == message_id
        assert data["state"] == "pending"
        assert data["payload"] == {"n": 1}
        assert data["tries"] == 0
        assert data["done_at"] is None

        claimed = (await client.post(f"{base_url}/claim")).json()
        await client.post(f"{base_url}/leases/{claimed['lease_token']}/ack")

        data = (await client.get(f"{base_url}/messages/{message_id}")).json()
        assert data["state"] == "done"
        assert data["tries"] == 1
        assert data["done_at"] is not None

    @pytest.mark.asyncio
    async def test_get_message_not_found(self, client: AsyncClient, base_url: str):
        """Test getting a message that does not exist."""
        response = await client.get(f"{base_url}/messages/{uuid4()}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_claim(self, client: AsyncClient, base_url: str):
        """Test claiming a message."""
        added = await client.post(f"{base_url}/messages", json={"payload": "hello"})

        response = await client.post(f"{base_url}/claim", json={"visibility": 10})

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == added.json()["ids"][0]
        assert data["payload"] == "hello"
        assert data["tries"] == 1
        assert data["lease_token"]

    @pytest.mark.asyncio
    async def test_claim_empty_queue(self, client: AsyncClient, base_url: str):
        """Test claiming from an empty queue."""
        response = await client.post(f"{base_url}/claim")

        assert response.status_code == 204
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_extend_and_ack(self, client: AsyncClient, base_url: str, claimed: dict):
        """Test pinging and then acknowledging a lease."""
        token = claimed["lease_token"]

        response = await client.post(f"{base_url}/leases/{token}/extend", json={"visibility": 30})
        assert response.status_code == 200
        assert response.json()["id"] == claimed["id"]

        response = await client.post(f"{base_url}/leases/{token}/ack")
        assert response.status_code == 200
        assert response.json()["id"] == claimed["id"]

    @pytest.mark.asyncio
    async def test_ack_twice_conflicts(self, client: AsyncClient, base_url: str, claimed: dict):
        """Test that a second acknowledgement is rejected."""
        token = claimed["lease_token"]

        first = await client.post(f"{base_url}/leases/{token}/ack")
        second = await client.post(f"{base_url}/leases/{token}/ack")

        assert first.status_code == 200
        assert second.status_code == 409

    @pytest.mark.asyncio
    async def test_extend_unknown_lease(self, client: AsyncClient, base_url: str):
        """Test extending a lease that does not exist."""
        response = await client.post(f"{base_url}/leases/nope/extend")
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_release_lease(self, client: AsyncClient, base_url: str, claimed: dict):
        """Test releasing a lease returns the message to the queue."""
        token = claimed["lease_token"]

        response = await client.post(
            f"{base_url}/leases/{token}/extend",
            json={"release_lease": True},
        )
        assert response.status_code == 200

        again = (await client.post(f"{base_url}/claim")).json()
        assert again["id"] == claimed["id"]
        assert again["tries"] == 2

    @pytest.mark.asyncio
    async def test_stats_and_clean(self, client: AsyncClient, base_url: str, claimed: dict):
        """Test stats through a lifecycle and cleaning done messages."""
        await client.post(f"{base_url}/messages", json={"payload": "pending"})

        stats = (await client.get(f"{base_url}/stats")).json()
        assert stats["total"] == 2
        assert stats["size"] == 1
        assert stats["in_flight"] == 1
        assert stats["done"] == 0

        await client.post(f"{base_url}/leases/{claimed['lease_token']}/ack")

        response = await client.delete(f"{base_url}/done")
        assert response.status_code == 200
        assert response.json()["deleted"] == 1

        response = await client.delete(f"{base_url}/done")
        assert response.json()["deleted"] == 0

        stats = (await client.get(f"{base_url}/stats")).json()
        assert stats["total"] == 1
        assert stats["done"] == 0


class TestHealthAPI:
    """Integration tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready_and_live(self, client: AsyncClient):
        assert (await client.get("/ready")).json() == {"ready": True}
        assert (await client.get("/live")).json() == {"alive": True}

    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient):
        await client.post("/v1/queues/metrics-test/messages", json={"payload": "x"})

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "messages_added_total" in response.text
