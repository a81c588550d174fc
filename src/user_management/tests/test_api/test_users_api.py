from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

BASE = "/api/v1/users"


def body(**overrides) -> dict:
    data = {
        "userName": "alice",
        "firstName": "Alice",
        "lastName": "Smith",
        "email": "alice@x.com",
        "userStatus": "A",
        "department": "Engineering",
    }
    data.update(overrides)
    return data


class TestCreateUser:

    async def test_create_returns_201_and_camel_case_body(self, client: AsyncClient):
        resp = await client.post(BASE, json=body())

        assert resp.status_code == 201
        data = resp.json()
        assert data["id"] >= 1
        assert data["userName"] == "alice"
        assert data["userStatus"] == "A"
        assert data["createdAt"] == data["updatedAt"]
        assert data["createdAt"].endswith("Z") or data["createdAt"].endswith("+00:00")
        assert "X-Request-ID" in resp.headers

    async def test_duplicate_user_name_is_409(self, client: AsyncClient):
        await client.post(BASE, json=body())

        resp = await client.post(BASE, json=body(email="bob@x.com"))

        assert resp.status_code == 409
        data = resp.json()
        assert data["status"] == 409
        assert data["error"] == "Conflict"
        assert data["code"] == "conflict"
        assert data["fields"] == ["userName"]
        assert "alice" in data["detail"]

    async def test_missing_fields_are_400_with_every_field(self, client: AsyncClient):
        resp = await client.post(BASE, json={"userName": "alice"})

        assert resp.status_code == 400
        data = resp.json()
        assert data["code"] == "validation_failed"
        assert {e["field"] for e in data["errors"]} == {"firstName", "lastName", "email", "userStatus"}

    async def test_wrong_json_type_is_400(self, client: AsyncClient):
        resp = await client.post(BASE, json=body(userName=1234))

        assert resp.status_code == 400
        data = resp.json()
        assert data["code"] == "validation_failed"
        assert data["errors"][0]["field"] == "userName"

    async def test_malformed_json_is_400(self, client: AsyncClient):
        resp = await client.post(BASE, content=b'{"userName": ', headers={"Content-Type": "application/json"})

        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_failed"


class TestReadUsers:

    async def test_list_empty(self, client: AsyncClient):
        resp = await client.get(BASE)
        assert resp.status_code == 200
        assert resp.json() == []

    async def test_list_and_get(self, client: AsyncClient):
        first = (await client.post(BASE, json=body())).json()
        second = (await client.post(BASE, json=body(userName="bobby", email="bob@x.com"))).json()

        listed = (await client.get(BASE)).json()
        assert [u["id"] for u in listed] == [first["id"], second["id"]]

        resp = await client.get(f"{BASE}/{second['id']}")
        assert resp.status_code == 200
        assert resp.json()["userName"] == "bobby"

    async def test_get_missing_is_404(self, client: AsyncClient):
        resp = await client.get(f"{BASE}/999")

        assert resp.status_code == 404
        assert resp.json() == {
            "status": 404,
            "error": "Not Found",
            "code": "not_found",
            "detail": "User with id 999 not found",
        }

    async def test_id_beyond_64_bit_range_is_404(self, client: AsyncClient):
        await client.post(BASE, json=body())
        huge = 2 ** 63

        assert (await client.get(f"{BASE}/{huge}")).status_code == 404
        assert (await client.put(f"{BASE}/{huge}", json=body())).status_code == 404
        assert (await client.put(f"{BASE}/{huge}", json=body(userName="other", email="o@x.com"))).status_code == 404
        resp = await client.delete(f"{BASE}/{huge}")
        assert resp.status_code == 404
        assert resp.json()["detail"] == f"User with id {huge} not found"

        assert len((await client.get(BASE)).json()) == 1

    async def test_non_positive_or_non_integer_id_is_400(self, client: AsyncClient):
        assert (await client.get(f"{BASE}/0")).status_code == 400
        assert (await client.get(f"{BASE}/abc")).status_code == 400


class TestUpdateUser:

    async def test_update_keeps_own_values(self, client: AsyncClient):
        created = (await client.post(BASE, json=body())).json()

        resp = await client.put(f"{BASE}/{created['id']}", json=body(firstName="Alicia"))

        assert resp.status_code == 200
        data = resp.json()
        assert data["firstName"] == "Alicia"
        assert data["createdAt"] == created["createdAt"]

    async def test_update_to_taken_email_is_409(self, client: AsyncClient):
        await client.post(BASE, json=body(userName="first", email="a@x.com"))
        second = (await client.post(BASE, json=body(userName="second", email="b@x.com"))).json()

        resp = await client.put(f"{BASE}/{second['id']}", json=body(userName="second", email="a@x.com"))

        assert resp.status_code == 409
        assert resp.json()["fields"] == ["email"]

    async def test_update_missing_is_404_even_with_colliding_values(self, client: AsyncClient):
        await client.post(BASE, json=body())

        resp = await client.put(f"{BASE}/500", json=body())

        assert resp.status_code == 404


class TestDeleteUser:

    async def test_delete_then_get_is_404(self, client: AsyncClient):
        created = (await client.post(BASE, json=body())).json()

        resp = await client.delete(f"{BASE}/{created['id']}")
        assert resp.status_code == 204
        assert resp.content == b""

        assert (await client.get(f"{BASE}/{created['id']}")).status_code == 404

    async def test_delete_missing_is_404(self, client: AsyncClient):
        assert (await client.delete(f"{BASE}/12")).status_code == 404


class TestErrorEnvelope:

    async def test_unknown_route_is_json_404(self, client: AsyncClient):
        resp = await client.get("/api/v1/nope")

        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    async def test_store_failure_is_opaque_500(self, client: AsyncClient, monkeypatch):
        async def _broken(self, *args, **kwargs):
            raise OperationalError(
                "SELECT", {}, Exception("password authentication failed for user svc at 10.1.2.3")
            )

        monkeypatch.setattr(AsyncSession, "execute", _broken)

        resp = await client.get(BASE)

        assert resp.status_code == 500
        data = resp.json()
        assert data["code"] == "store_failure"
        assert data["detail"] == "An unexpected error occurred on the server."
        assert "10.1.2.3" not in resp.text
        assert "password" not in resp.text
