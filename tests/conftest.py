from __future__ import annotations

import re
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from pizzashop.auth import hash_password
from pizzashop.config import Settings
from pizzashop.db import transaction
from pizzashop.emailer import Mailer
from pizzashop.main import create_app
from pizzashop.models import Ingredient, Pizza, User
from pizzashop.roles import Role

PASSWORD = "correct-horse-1"


class RecordingMailer(Mailer):
    def __init__(self) -> None:
        self.sent: List[Dict[str, str]] = []
        self.fail = False

    def send(self, to_email: str, subject: str, html: str) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append({"to": to_email, "subject": subject, "html": html})

    def token_for(self, email: str, subject: str) -> str:
        for m in reversed(self.sent):
            if m["to"] == email and m["subject"] == subject:
                return re.search(r"token=([^\"&]+)", m["html"]).group(1)
        raise AssertionError(f"no {subject!r} mail for {email}")


def make_settings(**overrides) -> Settings:
    values = dict(app_env="test", database_url="sqlite://", cors_origins=["http://testserver"])
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings, mailer):
    return create_app(settings, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def count(app, model, *where) -> int:
    with app.state.db.session() as s:
        return s.scalar(select(func.count()).select_from(model).where(*where))


def fetch(app, model, ident):
    with app.state.db.session() as s:
        return s.get(model, ident)


def add_user(app, email: str, role: Role = Role.customer, verified: bool = True, name: str = "Test User") -> int:
    with app.state.db.session() as s:
        with transaction(s):
            u = User(
                name=name,
                email=email,
                phone="555-0100",
                password_hash=hash_password(PASSWORD),
                role=role,
                is_verified=verified,
            )
            s.add(u)
        return u.id


def login(client, email: str, password: str = PASSWORD) -> Dict[str, str]:
    r = client.post("/api/v1/users/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}


def add_pizza(app, name: str, price: float = 10.0, size: str = "medium") -> int:
    with app.state.db.session() as s:
        with transaction(s):
            p = Pizza(name=name, slug=name.lower().replace(" ", "-"), price=price, size=size)
            s.add(p)
        return p.id


def add_ingredient(app, name: str) -> int:
    with app.state.db.session() as s:
        with transaction(s):
            i = Ingredient(name=name, description=f"{name} description")
            s.add(i)
        return i.id


@pytest.fixture
def customer(app, client):
    uid = add_user(app, "alice@example.com")
    return {"id": uid, "email": "alice@example.com", "headers": login(client, "alice@example.com")}


@pytest.fixture
def other_customer(app, client):
    uid = add_user(app, "bob@example.com")
    return {"id": uid, "email": "bob@example.com", "headers": login(client, "bob@example.com")}


@pytest.fixture
def admin(app, client):
    uid = add_user(app, "admin@example.com", role=Role.admin)
    return {"id": uid, "email": "admin@example.com", "headers": login(client, "admin@example.com")}


@pytest.fixture
def staff(app, client):
    uid = add_user(app, "staff@example.com", role=Role.staff)
    return {"id": uid, "email": "staff@example.com", "headers": login(client, "staff@example.com")}


@pytest.fixture
def pizzas(app):
    return [add_pizza(app, "Margherita", 10.0), add_pizza(app, "Pepperoni", 5.0)]
