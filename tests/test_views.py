from http import HTTPStatus
from types import SimpleNamespace

import pytest

from adminkit import READ, UPDATE, AdminKit, BelongsTo, CallbackRegistry, RuleAuthorization, Scope
from conftest import Post, User, db


@pytest.fixture
def admin(app, posts) -> SimpleNamespace:
    callbacks = CallbackRegistry()

    @callbacks.on("destroy")
    def keep_published(record, next_link) -> None:
        if record.status != "published":
            next_link()

    kit = AdminKit(app)
    kit.register(
        Post,
        scopes=[
            Scope("All"),
            Scope("Published", lambda query: query.filter(Post.status == "published"), default=True),
            Scope("Archived", "archived"),
        ],
        callbacks=callbacks,
    )
    kit.register(Post, name="user_posts", belongs_to=BelongsTo(User, "posts"))
    return SimpleNamespace(kit=kit, client=app.test_client(), posts=posts)


def test_index(admin) -> None:
    response = admin.client.get("/admin/posts")
    assert response.status_code == HTTPStatus.OK
    body = response.get_json()
    assert len(body["data"]) == 2
    assert body["meta"]["scope"] == "published"
    assert body["meta"]["total"] == 2
    assert body["meta"]["page"] == 1
    assert body["meta"]["scopes"] == {"all": 4, "published": 2, "archived": 1}


def test_index_sort_and_filter(admin) -> None:
    body = admin.client.get("/admin/posts?scope=all&order=views_asc").get_json()
    assert [post["slug"] for post in body["data"]] == ["draft-notes", "old-news", "flask-tips", "sqla-queries"]

    body = admin.client.get("/admin/posts?scope=all&q[user][name_eq]=bob&q[title_cont]=").get_json()
    assert sorted(post["slug"] for post in body["data"]) == ["draft-notes", "old-news"]
    assert body["meta"]["search"] == {"user": {"name_eq": "bob"}}
    assert body["meta"]["scopes"]["archived"] == 1

    body = admin.client.get("/admin/posts?scope=all&order=nonsense&q[views_gt]=many").get_json()
    assert len(body["data"]) == 4


def test_csv_export(admin) -> None:
    response = admin.client.get("/admin/posts.csv?scope=all")
    assert response.status_code == HTTPStatus.OK
    assert response.mimetype == "text/csv"
    assert response.headers["Content-Disposition"] == "attachment; filename=posts.csv"
    lines = response.get_data(as_text=True).strip().splitlines()
    assert lines[0] == "id,title,slug,status,views,featured,user_id"
    assert len(lines) == 5


def test_show_new_and_edit(admin) -> None:
    post = admin.posts.by_slug["old-news"]
    body = admin.client.get(f"/admin/posts/{post.id}").get_json()
    assert body["data"]["title"] == "Old news"

    body = admin.client.get(f"/admin/posts/{post.id}/edit").get_json()
    assert body["data"]["slug"] == "old-news"

    body = admin.client.get("/admin/posts/new").get_json()
    assert body["data"]["id"] is None


def test_show_not_found(admin) -> None:
    response = admin.client.get("/admin/posts/999")
    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.get_json()["errors"][0]["code"] == "404"


def test_create(admin) -> None:
    response = admin.client.post("/admin/posts", json={"title": "Created", "slug": "created", "id": 100})
    assert response.status_code == HTTPStatus.CREATED
    data = response.get_json()["data"]
    assert data["title"] == "Created"
    assert data["id"] != 100
    assert db.session.query(Post).filter_by(slug="created").count() == 1


def test_create_invalid(admin) -> None:
    response = admin.client.post("/admin/posts", json={"title": ""})
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    assert response.get_json()["errors"] == ["title can't be blank"]
    assert db.session.query(Post).count() == 4


def test_update(admin) -> None:
    post = admin.posts.by_slug["draft-notes"]
    response = admin.client.patch(f"/admin/posts/{post.id}", json={"title": "Final notes"})
    assert response.status_code == HTTPStatus.OK
    assert response.get_json()["data"]["title"] == "Final notes"

    response = admin.client.put(f"/admin/posts/{post.id}", json={"title": ""})
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_destroy(admin) -> None:
    draft = admin.posts.by_slug["draft-notes"]
    published = admin.posts.by_slug["flask-tips"]

    assert admin.client.delete(f"/admin/posts/{draft.id}").status_code == HTTPStatus.NO_CONTENT
    assert admin.client.delete(f"/admin/posts/{published.id}").status_code == HTTPStatus.CONFLICT
    assert db.session.query(Post).count() == 3


def test_nested_resource(admin, users) -> None:
    body = admin.client.get(f"/admin/users/{users.bob.id}/user_posts").get_json()
    assert sorted(post["slug"] for post in body["data"]) == ["draft-notes", "old-news"]

    assert admin.client.get("/admin/users/999/user_posts").status_code == HTTPStatus.NOT_FOUND

    response = admin.client.post(f"/admin/users/{users.alice.id}/user_posts", json={"title": "Nested"})
    assert response.status_code == HTTPStatus.CREATED
    assert response.get_json()["data"]["user_id"] == users.alice.id


def test_duplicate_registration(admin) -> None:
    with pytest.raises(ValueError):
        admin.kit.register(Post)


def test_authorization(app, users) -> None:
    auth = RuleAuthorization()
    auth.allow(User, READ)
    auth.allow(User, UPDATE, lambda user, record: user == "admin")
    kit = AdminKit(app, authorization=auth, current_user=lambda: "jane")
    kit.register(User)
    kit.register(Post)
    client = app.test_client()

    assert client.get("/admin/users").status_code == HTTPStatus.OK
    assert client.get(f"/admin/users/{users.alice.id}").status_code == HTTPStatus.OK
    assert client.get(f"/admin/users/{users.alice.id}/edit").status_code == HTTPStatus.FORBIDDEN
    assert client.get("/admin/posts").status_code == HTTPStatus.FORBIDDEN


def test_app_configuration(app, posts) -> None:
    app.config["DEFAULT_PER_PAGE"] = 3
    app.config["URL_PREFIX"] = "/backoffice"
    kit = AdminKit(app)
    config = kit.register(Post)
    assert config.per_page == 3

    body = app.test_client().get("/backoffice/posts?page=2").get_json()
    assert body["meta"]["per_page"] == 3
    assert body["meta"]["pages"] == 2
    assert len(body["data"]) == 1


def test_update_invalid_value(admin) -> None:
    post = admin.posts.by_slug["flask-tips"]
    response = admin.client.patch(f"/admin/posts/{post.id}", json={"views": "many"})
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    assert response.get_json()["errors"] == ['views has an invalid value "many"']
    assert db.session.get(Post, post.id).views == 10


def test_huge_page_number(admin) -> None:
    response = admin.client.get(f"/admin/posts?scope=all&page={10**30}")
    assert response.status_code == HTTPStatus.OK
    assert response.get_json()["data"] == []


def test_halted_create_and_update(app, posts) -> None:
    callbacks = CallbackRegistry()
    callbacks.register("save", lambda record, next_link: None)
    kit = AdminKit(app)
    kit.register(Post, callbacks=callbacks)
    client = app.test_client()
    post = posts.by_slug["draft-notes"]

    response = client.post("/admin/posts", json={"title": "Halted"})
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.get_json()["errors"] == ["create halted"]

    response = client.patch(f"/admin/posts/{post.id}", json={"title": "Halted"})
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.get_json()["errors"] == ["update halted"]

    db.session.expire_all()
    assert db.session.get(Post, post.id).title == "Draft notes"
    assert db.session.query(Post).count() == 4
