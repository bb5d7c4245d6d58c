import pytest

from pocketbook.exceptions import BadCredentialError, DuplicateEmailError, NotFoundError, WeakPasswordError
from pocketbook.services.auth.utils import password_verify
from pocketbook.services.deps import get_auth_service
from tests.utils import API, auth_headers, signup


class TestSignup:
    def test_signup_then_duplicate(self, client):
        response = signup(client, "t@test.com", name="Test")
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Test"
        assert body["email"] == "t@test.com"
        assert "password" not in body

        again = signup(client, "t@test.com", name="Test")
        assert again.status_code == 400
        assert "already exists" in again.json()["message"]

    def test_duplicate_is_case_insensitive(self, client):
        assert signup(client, "Mixed@Test.com").status_code == 201
        assert signup(client, "mixed@test.com").status_code == 400

    def test_short_password_rejected(self, client):
        response = signup(client, "short@test.com", password="12345")
        assert response.status_code == 400
        assert "at least 6" in response.json()["message"]

    def test_missing_field_is_bad_request(self, client):
        response = client.post(f"{API}/signup", json={"email": "x@test.com", "password": "123456"})
        assert response.status_code == 400
        assert "name" in response.json()["message"]


class TestLogin:
    def test_login_returns_tokens_and_home(self, client):
        signup(client, "t@test.com")
        response = client.post(f"{API}/login", json={"email": "t@test.com", "password": "123456"})
        assert response.status_code == 200
        body = response.json()
        assert body["access"] and body["refresh"]
        assert body["user"]["email"] == "t@test.com"
        assert body["home"] == "/dashboard"

    def test_wrong_password_is_401(self, client):
        signup(client, "t@test.com")
        response = client.post(f"{API}/login", json={"email": "t@test.com", "password": "wrong-one"})
        assert response.status_code == 401

    def test_unknown_email_is_404(self, client):
        response = client.post(f"{API}/login", json={"email": "nobody@test.com", "password": "123456"})
        assert response.status_code == 404

    def test_refresh_issues_new_access_token(self, client):
        signup(client, "t@test.com")
        tokens = client.post(f"{API}/login", json={"email": "t@test.com", "password": "123456"}).json()

        response = client.post(f"{API}/token/refresh", json={"refresh": tokens["refresh"]})
        assert response.status_code == 200
        me = client.get(f"{API}/me", headers={"Authorization": f"Bearer {response.json()['access']}"})
        assert me.status_code == 200

    def test_access_token_cannot_refresh(self, client):
        signup(client, "t@test.com")
        tokens = client.post(f"{API}/login", json={"email": "t@test.com", "password": "123456"}).json()
        response = client.post(f"{API}/token/refresh", json={"refresh": tokens["access"]})
        assert response.status_code == 401

    def test_logout(self, client):
        assert client.post(f"{API}/logout").status_code == 204


class TestProfile:
    def test_me_requires_token(self, client):
        assert client.get(f"{API}/me").status_code == 401

    def test_garbage_token_is_401(self, client):
        response = client.get(f"{API}/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_rename(self, client):
        headers = auth_headers(client, "t@test.com")
        response = client.patch(f"{API}/me", json={"name": "  New Name "}, headers=headers)
        assert response.status_code == 200
        assert response.json()["name"] == "New Name"
        assert client.patch(f"{API}/me", json={"name": " "}, headers=headers).status_code == 400


@pytest.mark.anyio
class TestAccountStore:
    async def test_password_is_hashed(self, session):
        auth = get_auth_service()
        user = await auth.create_user(session, "Test", "t@test.com", "123456")
        assert user.password != "123456"
        assert await password_verify("123456", user.password)

    async def test_verify(self, session):
        auth = get_auth_service()
        created = await auth.create_user(session, "Test", "T@Test.com", "123456")

        assert (await auth.verify(session, "t@test.com", "123456")).id == created.id
        with pytest.raises(BadCredentialError):
            await auth.verify(session, "t@test.com", "1234567")
        with pytest.raises(NotFoundError):
            await auth.verify(session, "other@test.com", "123456")

    async def test_create_failures(self, session):
        auth = get_auth_service()
        await auth.create_user(session, "Test", "t@test.com", "123456")
        with pytest.raises(DuplicateEmailError):
            await auth.create_user(session, "Again", "t@test.com", "abcdef")
        with pytest.raises(WeakPasswordError):
            await auth.create_user(session, "Weak", "weak@test.com", "abc")
