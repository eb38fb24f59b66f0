# tests/v1/test_auth_api.py
"""Tests for registration, login and logout endpoints."""

import pytest
from fastapi import status

from threadline.services.auth import derive_username

PASSWORD = "correct-horse-1"


def _register(client, **overrides):
    payload = {
        "display_name": "Grace Hopper",
        "email": "Grace.Hopper@example.com",
        "password": "cobol-rules-59",
        "confirm_password": "cobol-rules-59",
    }
    payload.update(overrides)
    return client.post("/api/v1/auth/register", json=payload)


def test_register_creates_profile_and_signs_in(client) -> None:
    """Registration returns a token and a username derived from the email."""
    response = _register(client)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["username"] == "gracehopper"
    assert data["user"]["display_name"] == "Grace Hopper"


def test_register_picks_a_free_username(client, author) -> None:
    """A taken username gets a numeric suffix."""
    response = _register(client, email="ada@elsewhere.org")

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["user"]["username"] == "ada2"


def test_register_rejects_duplicate_email(client, author) -> None:
    response = _register(client, email="ADA@example.com")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "already exists" in response.json()["detail"]


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"display_name": " "}, "Please fill in all fields"),
        ({"email": "not-an-email"}, "valid email"),
        ({"confirm_password": "something-else"}, "Passwords do not match"),
        ({"password": "short", "confirm_password": "short"}, "at least 8"),
    ],
)
def test_register_validation(client, overrides, message) -> None:
    response = _register(client, **overrides)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert message in response.json()["detail"]


@pytest.mark.parametrize(
    ("email", "username"),
    [
        ("Jane.Doe+news@example.com", "janedoenews"),
        ("___@example.com", "___"),
        ("..@example.com", "user"),
        (f"{'x' * 40}@example.com", "x" * 30),
    ],
)
def test_derive_username(email, username) -> None:
    assert derive_username(email) == username


def test_login_success(client, author) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "Ada@Example.com", "password": PASSWORD},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["id"] == author.id


def test_login_wrong_password(client, author) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "ada@example.com", "password": "nope-nope-nope"},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json()["detail"] == "Invalid email or password"


def test_logout(client, auth_headers) -> None:
    response = client.post("/api/v1/auth/logout", headers=auth_headers)

    assert response.status_code == status.HTTP_204_NO_CONTENT


def test_token_for_feed_access(client, author, auth_headers, make_post) -> None:
    """A registered viewer sees their own reaction state in the feed."""
    post = make_post(author, "mine")
    client.post(f"/api/v1/feed/posts/{post.id}/like", headers=auth_headers)

    signed_in = client.get("/api/v1/feed", headers=auth_headers).json()
    anonymous = client.get("/api/v1/feed").json()
    bad_token = client.get("/api/v1/feed", headers={"Authorization": "Bearer garbage"}).json()

    assert signed_in[0]["my_reaction"] == "like"
    assert anonymous[0]["my_reaction"] is None
    assert bad_token[0]["my_reaction"] is None
