import logging
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import Session, sessionmaker

from opentextbook.main import create_app
from opentextbook.database import get_db
from opentextbook.models import Base, Genre

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base.metadata.create_all(bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app = create_app()
app.dependency_overrides[get_db] = override_get_db


def logged_in_client():
    client = TestClient(app)
    suffix = uuid.uuid4().hex[:8]
    reg = {
        "userName": f"writer_{suffix}",
        "firstName": "Frank",
        "lastName": "Herbert",
        "birthday": "1920-10-08",
        "email": f"writer_{suffix}@example.com",
        "password": "password123",
        "password2": "password123",
    }
    assert client.post("/users/register", data=reg, follow_redirects=False).status_code == 303
    r = client.post("/users/login", data={"username": reg["userName"], "password": "password123"}, follow_redirects=False)
    assert r.headers["location"] == "/users/profile"
    client.get("/users/login")  # drain pending flashes
    return client


def create_book(client, title=None, description="A book about things"):
    label = f"genre_{uuid.uuid4().hex[:8]}"
    assert client.post("/books/genre", data={"genre": label}, follow_redirects=False).status_code == 303
    title = title or f"Book {uuid.uuid4().hex[:8]}"
    r = client.post(
        "/books/add",
        data={"title": title, "genre": label, "description": description},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/users/profile"
    books = client.get("/users/profile").json()["books"]
    return next(b for b in books if b["title"] == title)


def add_page(client, book_id, number, chapter="Chapter", body="Some text"):
    return client.post(
        f"/books/{book_id}",
        data={"chapterName": chapter, "pageNumber": str(number), "body": body},
        follow_redirects=False,
    )


def page_ids(client, book_id):
    return [p["id"] for p in client.get(f"/books/{book_id}").json()["pages"]]


@pytest.fixture
def client():
    return logged_in_client()


def test_protected_routes_redirect_to_login():
    anon = TestClient(app)
    for method, url in [
        ("GET", "/books/add"),
        ("POST", "/books/add"),
        ("GET", "/books/genre"),
        ("POST", "/books/1"),
        ("DELETE", "/books/delete/1"),
        ("DELETE", "/books/page/delete/1"),
        ("GET", "/books/request/1"),
    ]:
        r = anon.request(method, url, follow_redirects=False)
        assert r.status_code == 303, url
        assert r.headers["location"] == "/users/login"
    msgs = anon.get("/users/login").json()["messages"]
    assert {"category": "danger", "message": "Please login"} in msgs


def test_genre_book_page_scenario(client):
    r = client.post("/books/genre", data={"genre": "Fantasy"}, follow_redirects=False)
    assert r.headers["location"] == "/books/add"
    assert "Fantasy" in client.get("/books/add").json()["distinctGenre"]

    r = client.post("/books/add", data={"title": "Dune", "genre": "Fantasy", "description": "Spice"}, follow_redirects=False)
    assert r.status_code == 303
    dune = next(b for b in client.get("/users/profile").json()["books"] if b["title"] == "Dune")

    assert add_page(client, dune["id"], 1, chapter="Ch1").status_code == 303
    dup = add_page(client, dune["id"], 1, chapter="Ch1 again")
    assert dup.status_code == 400
    body = dup.json()
    assert body["template"] == "books"
    assert {"param": "pageNumber", "msg": "Page number already exists", "value": "1"} in body["errors"]
    assert body["input"]["chapterName"] == "Ch1 again"

    view = client.get(f"/books/{dune['id']}").json()
    assert [p["page_number"] for p in view["pages"]] == [1]
    assert view["genre"]["label"] == "Fantasy"
    assert view["author"].startswith("writer_")


def test_book_view_is_public_and_pages_sorted(client):
    book = create_book(client)
    for n in (2, 3, 1):
        assert add_page(client, book["id"], n).status_code == 303
    anon = TestClient(app)
    view = anon.get(f"/books/{book['id']}")
    assert view.status_code == 200
    assert [p["page_number"] for p in view.json()["pages"]] == [1, 2, 3]


def test_books_all_returns_json_list(client):
    book = create_book(client)
    r = TestClient(app).get("/books/all")
    assert r.status_code == 200
    assert book["id"] in [b["id"] for b in r.json()]


@pytest.mark.parametrize("number", ["0", "-5"])
def test_add_page_rejects_non_positive_number(client, number):
    book = create_book(client)
    r = add_page(client, book["id"], number)
    assert r.status_code == 400
    assert "Page number should not be equal or less than 0" in [e["msg"] for e in r.json()["errors"]]
    assert page_ids(client, book["id"]) == []


def test_add_page_rejects_non_numeric_number(client):
    book = create_book(client)
    r = add_page(client, book["id"], "abc")
    assert r.status_code == 400
    assert "Page number must be a whole number" in [e["msg"] for e in r.json()["errors"]]


def test_duplicate_genre_rerenders_form(client):
    label = f"genre_{uuid.uuid4().hex[:8]}"
    client.post("/books/genre", data={"genre": label})
    r = client.post("/books/genre", data={"genre": label})
    assert r.status_code == 400
    assert r.json()["template"] == "add_genre"
    assert r.json()["errors"][0]["msg"] == "Genre already exist, add a new one or just cancel"


def test_genre_accepts_json_body(client):
    r = client.post("/books/genre", json={"genre": f"genre_{uuid.uuid4().hex[:8]}"}, follow_redirects=False)
    assert r.status_code == 303


def test_add_book_validation(client):
    r = client.post("/books/add", data={"title": "", "genre": "", "description": "x" * 201})
    assert r.status_code == 400
    body = r.json()
    assert body["template"] == "add_book"
    msgs = [e["msg"] for e in body["errors"]]
    assert "Please add a title for your book" in msgs
    assert "Please choose or add a genre for your book" in msgs
    assert "Please limit your description to 200 characters" in msgs
    assert "distinctGenre" in body


def test_modify_book(client):
    book = create_book(client)
    label = f"genre_{uuid.uuid4().hex[:8]}"
    client.post("/books/genre", data={"genre": label})
    form = client.get(f"/books/modify/{book['id']}").json()
    assert form["template"] == "modify_book"

    r = client.post(
        f"/books/modify/{book['id']}",
        data={"title": "New Title", "genre": label, "description": "Updated"},
        follow_redirects=False,
    )
    assert r.headers["location"] == f"/books/{book['id']}"
    view = client.get(f"/books/{book['id']}").json()
    assert view["book"]["title"] == "New Title"
    assert view["genre"]["label"] == label
    assert view["book"]["author_id"] == book["author_id"]
    assert {"category": "success", "message": "Book updated Successfully"} in view["messages"]


def test_modify_page_keeps_own_number(client):
    book = create_book(client)
    add_page(client, book["id"], 1)
    add_page(client, book["id"], 2)
    first, second = page_ids(client, book["id"])

    r = client.post(
        f"/books/page/modify/{first}",
        data={"chapterName": "Renamed", "pageNumber": "1", "body": "Rewritten"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == f"/books/page/{first}"
    page = client.get(f"/books/page/{first}").json()
    assert page["template"] == "page"
    assert page["page"]["body"] == "Rewritten"
    assert page["page"]["chapter_name"] == "Renamed"

    clash = client.post(
        f"/books/page/modify/{second}",
        data={"chapterName": "Two", "pageNumber": "1", "body": "x"},
    )
    assert clash.status_code == 400
    assert clash.json()["template"] == "modify_page"
    assert "Page number already exists" in [e["msg"] for e in clash.json()["errors"]]


def test_delete_book_removes_pages(client):
    book = create_book(client)
    for n in (1, 2, 3):
        add_page(client, book["id"], n)
    pages = page_ids(client, book["id"])
    assert len(pages) == 3

    confirm = client.get(f"/books/delete/{book['id']}").json()
    assert confirm["template"] == "delete_book"
    assert len(confirm["pages"]) == 3

    r = client.delete(f"/books/delete/{book['id']}")
    assert r.status_code == 200
    assert r.text == "Successfully deleted"

    assert client.get(f"/books/{book['id']}").status_code == 404
    for pid in pages:
        assert client.get(f"/books/page/{pid}").status_code == 404


def test_delete_page(client):
    book = create_book(client)
    add_page(client, book["id"], 1)
    (pid,) = page_ids(client, book["id"])
    r = client.delete(f"/books/page/delete/{pid}")
    assert r.status_code == 200
    assert r.text == "Successfully deleted"
    assert client.get(f"/books/page/{pid}").status_code == 404
    assert client.delete(f"/books/page/delete/{pid}").status_code == 404


def test_access_request_reaches_author(client):
    book = create_book(client)
    reader = logged_in_client()

    assert reader.get(f"/books/request/{book['id']}").json()["template"] == "request_access"
    empty = reader.post(f"/books/request/{book['id']}", data={"request": ""})
    assert empty.status_code == 400
    assert empty.json()["errors"][0]["msg"] == "Please send the author a request message."

    r = reader.post(f"/books/request/{book['id']}", data={"request": "May I co-author?"}, follow_redirects=False)
    assert r.headers["location"] == f"/books/{book['id']}"

    requests = client.get("/users/profile").json()["requests"]
    assert [(q["book_id"], q["message"]) for q in requests] == [(book["id"], "May I co-author?")]


def test_missing_entities_are_404(client):
    assert client.get("/books/999999").json()["detail"] == "Book not found"
    assert client.get("/books/page/999999").status_code == 404
    assert client.get("/books/modify/999999").status_code == 404
    assert client.delete("/books/delete/999999").status_code == 404
    assert add_page(client, 999999, 1).status_code == 404


def test_add_book_reads_json_numbers_as_text(client):
    label = f"genre_{uuid.uuid4().hex[:8]}"
    client.post("/books/genre", data={"genre": label})
    title = f"Book {uuid.uuid4().hex[:8]}"
    r = client.post("/books/add", json={"title": title, "genre": label, "description": 12345}, follow_redirects=False)
    assert r.status_code == 303
    books = client.get("/users/profile").json()["books"]
    assert next(b for b in books if b["title"] == title)["description"] == "12345"


def test_add_book_rejects_list_value(client):
    r = client.post("/books/add", json={"title": ["a", "b"], "genre": "x", "description": "y"}, follow_redirects=False)
    assert r.status_code == 400
    assert r.json()["errors"][0]["param"] == "title"


def test_failed_commit_is_500_and_rolled_back(client, monkeypatch, caplog):
    rollbacks = []
    real_rollback = Session.rollback

    def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    def recording_rollback(self):
        rollbacks.append(self)
        return real_rollback(self)

    monkeypatch.setattr(Session, "commit", failing_commit)
    monkeypatch.setattr(Session, "rollback", recording_rollback)
    caplog.set_level(logging.ERROR, logger="opentextbook.services.content")

    label = f"genre_{uuid.uuid4().hex[:8]}"
    r = client.post("/books/genre", data={"genre": label}, follow_redirects=False)
    assert r.status_code == 500
    assert r.json() == {"detail": "Internal Server Error", "errors": None}
    assert rollbacks
    assert any(
        rec.name == "opentextbook.services.content" and rec.exc_info and "Creating genre failed" in rec.getMessage()
        for rec in caplog.records
    )

    monkeypatch.undo()
    db = TestingSessionLocal()
    try:
        assert db.query(Genre).filter(Genre.label == label).first() is None
    finally:
        db.close()
