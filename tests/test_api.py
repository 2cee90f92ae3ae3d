"""End-to-end tests through the HTTP surface."""

from conftest import STRONG_PASSWORD


def _register(client, email="alice@example.com", name="Alice"):
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": STRONG_PASSWORD, "name": name},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _create(client, token, **fields):
    body = {"type": "expense", "amount": "10.00", "category": "Food"}
    body.update(fields)
    response = client.post("/api/transactions", json=body, headers=_auth(token))
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthEndpoints:
    def test_health(self, client):
        assert client.get("/api/health").json()["ok"] is True

    def test_register_then_login(self, client):
        registered = _register(client)

        response = client.post(
            "/api/auth/login", json={"email": "ALICE@example.com", "password": STRONG_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == registered["user"]["id"]
        profile = client.get("/api/auth/profile", headers=_auth(body["token"]))
        assert profile.json()["user"]["email"] == "alice@example.com"

    def test_duplicate_registration_conflicts(self, client):
        _register(client)

        response = client.post(
            "/api/auth/register",
            json={"email": "Alice@Example.com", "password": "Other1Pass", "name": "Alice 2"},
        )

        assert response.status_code == 409

    def test_weak_password_is_rejected(self, client):
        response = client.post(
            "/api/auth/register", json={"email": "weak@example.com", "password": "password"}
        )

        assert response.status_code == 400

    def test_login_failure_is_generic(self, client):
        _register(client)

        unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": STRONG_PASSWORD})
        wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong1Pass"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()

    def test_password_reset_flow(self, client):
        _register(client)

        known = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"}).json()
        unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"}).json()
        assert known["message"] == unknown["message"]
        assert unknown["token"] is None

        reset = client.post(
            "/api/auth/reset-password", json={"token": known["token"], "new_password": "Fresh1Pass"}
        )
        replay = client.post(
            "/api/auth/reset-password", json={"token": known["token"], "new_password": "Again1Pass"}
        )

        assert reset.status_code == 200
        assert replay.status_code == 400
        login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Fresh1Pass"})
        assert login.status_code == 200

    def test_change_password(self, client):
        token = _register(client)["token"]

        wrong = client.post(
            "/api/auth/change-password",
            json={"current_password": "Nope1Nope", "new_password": "Fresh1Pass"},
            headers=_auth(token),
        )
        right = client.post(
            "/api/auth/change-password",
            json={"current_password": STRONG_PASSWORD, "new_password": "Fresh1Pass"},
            headers=_auth(token),
        )

        assert wrong.status_code == 400
        assert right.status_code == 200
        # Sessions issued before the change stay valid until they expire.
        assert client.get("/api/auth/profile", headers=_auth(token)).status_code == 200

    def test_email_verification(self, client):
        token = _register(client)["token"]

        issued = client.post("/api/auth/send-verification", headers=_auth(token)).json()
        verified = client.post("/api/auth/verify-email", json={"token": issued["token"]})

        assert verified.status_code == 200
        assert client.get("/api/auth/profile", headers=_auth(token)).json()["user"]["email_verified"] is True
        assert client.post("/api/auth/send-verification", headers=_auth(token)).status_code == 400

    def test_update_profile(self, client):
        token = _register(client)["token"]
        _register(client, email="bob@example.com", name="Bob")

        renamed = client.put("/api/auth/profile", json={"name": "Alice Smith"}, headers=_auth(token))
        taken = client.put("/api/auth/profile", json={"email": "bob@example.com"}, headers=_auth(token))

        assert renamed.json()["user"]["name"] == "Alice Smith"
        assert taken.status_code == 409


class TestSessionMiddleware:
    def test_missing_header(self, client):
        response = client.get("/api/transactions")

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_malformed_header(self, client):
        token = _register(client)["token"]

        response = client.get("/api/transactions", headers={"Authorization": f"Token {token}"})

        assert response.status_code == 401

    def test_expired_and_tampered_tokens_look_the_same(self, client, clock):
        token = _register(client)["token"]
        tampered = client.get("/api/transactions", headers=_auth(token[:-2] + "xx"))

        clock.advance(days=8)
        expired = client.get("/api/transactions", headers=_auth(token))

        assert tampered.status_code == expired.status_code == 401
        assert tampered.json() == expired.json()


class TestTransactionEndpoints:
    def test_create_and_list(self, client):
        token = _register(client)["token"]
        created = _create(client, token, amount="12.5", description="Lunch")

        listing = client.get("/api/transactions", headers=_auth(token)).json()

        assert created["amount"] == "12.50"
        assert created["type"] == "expense"
        assert listing["items"][0]["id"] == created["id"]
        assert listing["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

    def test_validation_errors(self, client):
        token = _register(client)["token"]

        bad_amount = client.post(
            "/api/transactions", json={"type": "expense", "amount": "0", "category": "Food"}, headers=_auth(token)
        )
        bad_kind = client.post(
            "/api/transactions", json={"type": "refund", "amount": "5", "category": "Food"}, headers=_auth(token)
        )

        assert bad_amount.status_code == 400
        assert bad_kind.status_code == 400
        assert client.get("/api/transactions", headers=_auth(token)).json()["pagination"]["total"] == 0

    def test_pagination_and_filters(self, client):
        token = _register(client)["token"]
        for day in range(1, 8):
            _create(client, token, timestamp=f"2025-03-0{day}T09:00:00Z", category="Food" if day % 2 else "Rent")

        page_two = client.get(
            "/api/transactions", params={"page": 2, "limit": 3}, headers=_auth(token)
        ).json()
        rent = client.get(
            "/api/transactions",
            params={"category": "Rent", "start_date": "2025-03-03", "end_date": "2025-03-06"},
            headers=_auth(token),
        ).json()

        assert page_two["pagination"] == {"page": 2, "limit": 3, "total": 7, "pages": 3}
        assert [item["timestamp"][:10] for item in page_two["items"]] == ["2025-03-04", "2025-03-03", "2025-03-02"]
        assert rent["pagination"]["total"] == 2

    def test_cross_owner_access_is_not_found(self, client):
        alice_token = _register(client)["token"]
        bob_token = _register(client, email="bob@example.com", name="Bob")["token"]
        secret = _create(client, alice_token, amount="99.00")

        update = client.put(f"/api/transactions/{secret['id']}", json={"amount": "1"}, headers=_auth(bob_token))
        delete = client.delete(f"/api/transactions/{secret['id']}", headers=_auth(bob_token))
        missing = client.delete("/api/transactions/123456", headers=_auth(bob_token))

        assert update.status_code == delete.status_code == missing.status_code == 404
        assert update.json() == missing.json()
        assert client.get("/api/transactions", headers=_auth(bob_token)).json()["items"] == []

    def test_huge_page_returns_empty_items_with_total(self, client):
        token = _register(client)["token"]
        _create(client, token)

        response = client.get(
            "/api/transactions", params={"page": 10**18}, headers=_auth(token)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["items"] == []
        assert body["pagination"]["total"] == 1

    def test_out_of_range_id_is_not_found(self, client):
        token = _register(client)["token"]

        update = client.put(f"/api/transactions/{10**19}", json={"category": "x"}, headers=_auth(token))
        delete = client.delete(f"/api/transactions/{10**19}", headers=_auth(token))

        assert update.status_code == delete.status_code == 404

    def test_unrepresentable_timestamp_is_a_validation_error(self, client):
        token = _register(client)["token"]
        created = _create(client, token)

        post = client.post(
            "/api/transactions",
            json={"type": "expense", "amount": "5", "category": "Food", "timestamp": "9999-12-31T23:00:00-05:00"},
            headers=_auth(token),
        )
        put = client.put(
            f"/api/transactions/{created['id']}",
            json={"timestamp": "0001-01-01T01:00:00+05:00"},
            headers=_auth(token),
        )

        assert post.status_code == put.status_code == 400
        assert client.get("/api/transactions", headers=_auth(token)).json()["pagination"]["total"] == 1

    def test_partial_update_and_delete(self, client):
        token = _register(client)["token"]
        created = _create(client, token, description="Lunch")

        updated = client.put(
            f"/api/transactions/{created['id']}", json={"description": None}, headers=_auth(token)
        ).json()
        deleted = client.delete(f"/api/transactions/{created['id']}", headers=_auth(token))

        assert updated["description"] is None
        assert updated["amount"] == "10.00"
        assert updated["category"] == "Food"
        assert deleted.status_code == 200

    def test_summary_and_categories(self, client):
        token = _register(client)["token"]
        _create(client, token, type="income", amount="1000.00", category="Salary")
        _create(client, token, amount="300.00", category="Food")
        _create(client, token, amount="150.00", category="Transport")

        summary = client.get("/api/transactions/summary", headers=_auth(token)).json()
        categories = client.get("/api/categories", headers=_auth(token)).json()

        assert summary == {
            "total_income": "1000.00",
            "total_expenses": "450.00",
            "balance": "550.00",
            "category_breakdown": {"Food": "300.00", "Transport": "150.00"},
        }
        assert categories == {"income": ["Salary"], "expense": ["Food", "Transport"]}

    def test_stats(self, client):
        token = _register(client)["token"]
        _create(client, token, amount="20.00")

        stats = client.get("/api/auth/stats", headers=_auth(token)).json()

        assert stats["total_transactions"] == 1
        assert stats["monthly_stats"][0]["month"] == "2025-03"
        assert stats["monthly_stats"][0]["total_expenses"] == "20.00"

    def test_account_deletion_removes_ledger(self, client):
        token = _register(client)["token"]
        _create(client, token)

        response = client.request(
            "DELETE", "/api/auth/account", json={"password": STRONG_PASSWORD}, headers=_auth(token)
        )

        assert response.status_code == 200
        # The session outlives the account but finds nothing.
        assert client.get("/api/transactions", headers=_auth(token)).json()["items"] == []
        assert client.get("/api/auth/profile", headers=_auth(token)).status_code == 401
