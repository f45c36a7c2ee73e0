from types import SimpleNamespace
from typing import Any, Optional

import pytest
from flask import Flask
from flask_sqlalchemy import SQLAlchemy

from adminkit import DataAccess, RequestContext, ResourceConfig, SQLAlchemyStore

db = SQLAlchemy()


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, default="")
    email = db.Column(db.String, default="")
    posts = db.relationship("Post", back_populates="user")


class Post(db.Model):
    __tablename__ = "posts"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String, default="")
    slug = db.Column(db.String, unique=True)
    status = db.Column(db.String, default="draft")
    views = db.Column(db.Integer, default=0)
    featured = db.Column(db.Boolean, default=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    user = db.relationship("User", back_populates="posts")

    def validate(self):
        if not self.title:
            return {"title": "can't be blank"}
        return None

    @classmethod
    def archived(cls, query):
        return query.filter(cls.status == "archived")


@pytest.fixture
def app():
    app = Flask("adminkit_test")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite://", TESTING=True)
    db.init_app(app)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def store(app) -> SQLAlchemyStore:
    return SQLAlchemyStore(db.session)


@pytest.fixture
def users(app) -> SimpleNamespace:
    alice = User(name="alice", email="alice@example.org")
    bob = User(name="bob", email="bob@example.org")
    db.session.add_all([alice, bob])
    db.session.commit()
    return SimpleNamespace(alice=alice, bob=bob)


@pytest.fixture
def posts(app, users) -> SimpleNamespace:
    items = [
        Post(title="Flask tips", slug="flask-tips", status="published", views=10, user=users.alice),
        Post(title="SQLAlchemy queries", slug="sqla-queries", status="published", views=30, user=users.alice),
        Post(title="Draft notes", slug="draft-notes", status="draft", views=0, user=users.bob),
        Post(title="Old news", slug="old-news", status="archived", views=5, user=users.bob),
    ]
    db.session.add_all(items)
    db.session.commit()
    return SimpleNamespace(items=items, by_slug={post.slug: post for post in items})


def make_access(
    store: SQLAlchemyStore, config: ResourceConfig, action: str = "index", format: str = "json", user: Optional[Any] = None, authorization=None, **params
) -> DataAccess:
    context = RequestContext(action=action, params=params, format=format, user=user)
    return DataAccess(config, context, store, authorization)


@pytest.fixture
def access_factory(store):
    def factory(config: ResourceConfig, action: str = "index", **kwargs) -> DataAccess:
        return make_access(store, config, action, **kwargs)

    return factory
