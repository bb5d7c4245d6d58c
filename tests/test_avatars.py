import pytest

from pocketbook.exceptions import NotOwnerError, ValidationError
from pocketbook.services.deps import get_storage_service
from tests.utils import API, auth_headers, current_user_id


class TestStorage:
    @pytest.mark.parametrize("name", ["../secret.png", "a/b.png", "a\\b.png", "..", ""])
    def test_traversal_rejected(self, env, name):
        with pytest.raises(ValidationError):
            get_storage_service().delete_avatar(name, owner_id=1)

    def test_missing_file_is_not_an_error(self, env):
        assert get_storage_service().delete_avatar("1-ghost.png", owner_id=1) is False

    def test_existing_file_removed(self, env):
        storage = get_storage_service()
        storage.avatar_dir.mkdir(parents=True)
        path = storage.avatar_dir / "7-me.png"
        path.write_bytes(b"png")

        assert storage.delete_avatar("7-me.png", owner_id=7) is True
        assert not path.exists()

    def test_other_users_file_is_left_alone(self, env):
        storage = get_storage_service()
        storage.avatar_dir.mkdir(parents=True)
        path = storage.avatar_dir / "2-face.png"
        path.write_bytes(b"png")

        with pytest.raises(NotOwnerError):
            storage.delete_avatar("2-face.png", owner_id=1)
        # "12-" is not "2-"
        with pytest.raises(NotOwnerError):
            storage.delete_avatar("2-face.png", owner_id=12)
        assert path.exists()

    def test_current_avatar_counts_as_owned(self, env):
        storage = get_storage_service()
        assert storage.owns_avatar("custom.png", owner_id=3, current_file="custom.png")
        assert not storage.owns_avatar("custom.png", owner_id=3)


class TestAvatarApi:
    def test_requires_session(self, client):
        assert client.delete(f"{API}/avatars", params={"file": "x.png"}).status_code == 401

    def test_traversal_is_bad_request(self, client):
        headers = auth_headers(client, "a@test.com")
        response = client.delete(f"{API}/avatars", params={"file": "..\\..\\etc"}, headers=headers)
        assert response.status_code == 400

    def test_comma_does_not_split_the_file_name(self, client, env):
        headers = auth_headers(client, "a@test.com")
        user_id = current_user_id(client, headers)
        avatar_dir = env / "avatars"
        avatar_dir.mkdir()
        victim = avatar_dir / f"{user_id}-victim.png"
        victim.write_bytes(b"png")

        response = client.delete(
            f"{API}/avatars", params={"file": f"../etc,{user_id}-victim.png"}, headers=headers
        )
        assert response.status_code == 400
        assert victim.exists()

    def test_repeated_file_parameter_is_rejected(self, client, env):
        headers = auth_headers(client, "a@test.com")
        user_id = current_user_id(client, headers)
        avatar_dir = env / "avatars"
        avatar_dir.mkdir()
        victim = avatar_dir / f"{user_id}-victim.png"
        victim.write_bytes(b"png")

        response = client.delete(
            f"{API}/avatars", params=[("file", "../etc"), ("file", f"{user_id}-victim.png")], headers=headers
        )
        assert response.status_code == 400
        assert victim.exists()

    def test_missing_file_succeeds(self, client):
        headers = auth_headers(client, "a@test.com")
        user_id = current_user_id(client, headers)
        response = client.delete(f"{API}/avatars", params={"file": f"{user_id}-nothing.png"}, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "removed": False}

    def test_removes_file(self, client, env):
        headers = auth_headers(client, "a@test.com")
        user_id = current_user_id(client, headers)
        avatar_dir = env / "avatars"
        avatar_dir.mkdir()
        (avatar_dir / f"{user_id}-face.jpg").write_bytes(b"jpg")

        response = client.delete(f"{API}/avatars", params={"file": f"{user_id}-face.jpg"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["removed"] is True
        assert not (avatar_dir / f"{user_id}-face.jpg").exists()

    def test_cannot_delete_another_users_avatar(self, client, env):
        alice = auth_headers(client, "alice@test.com")
        alice_id = current_user_id(client, alice)
        mallory = auth_headers(client, "mallory@test.com")
        avatar_dir = env / "avatars"
        avatar_dir.mkdir()
        alice_avatar = avatar_dir / f"{alice_id}-alice.png"
        alice_avatar.write_bytes(b"png")

        response = client.delete(f"{API}/avatars", params={"file": alice_avatar.name}, headers=mallory)
        assert response.status_code == 404
        assert alice_avatar.exists()

        # unprefixed names belong to nobody unless set as the caller's avatar
        (avatar_dir / "alice.png").write_bytes(b"png")
        response = client.delete(f"{API}/avatars", params={"file": "alice.png"}, headers=mallory)
        assert response.status_code == 404
        assert (avatar_dir / "alice.png").exists()
