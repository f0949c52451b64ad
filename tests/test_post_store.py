import json
import threading

import pytest

import post_store
from errors import ConflictError, PersistenceError, ValidationError
from post_store import JsonFilePostRepository, new_post_id, validate_candidate


def stored(blogs_file):
    return json.loads(blogs_file.read_text(encoding="utf-8"))


@pytest.mark.parametrize("candidate", [
    {"title": "", "content": "x"},
    {"title": "   ", "content": "x"},
    {"title": "Hello", "content": ""},
    {"title": "Hello", "content": " \n "},
    {"content": "x"},
    {"title": "Hello"},
    {"title": 5, "content": "x"},
    ["not", "an", "object"],
    None,
])
def test_invalid_candidates_are_rejected(candidate):
    with pytest.raises(ValidationError) as exc:
        validate_candidate(candidate)
    assert exc.value.message == "Title and content are required"
    assert exc.value.status_code == 400


def test_empty_title_never_touches_storage(repo, blogs_file):
    with pytest.raises(ValidationError):
        repo.append({"title": "", "content": "<p>x</p>"})
    # Validation fails before storage is even created
    assert not blogs_file.exists()

    repo.append({"title": "First", "content": "<p>1</p>"})
    with pytest.raises(ValidationError):
        repo.append({"title": "", "content": "<p>x</p>"})
    assert len(stored(blogs_file)) == 1


def test_append_fills_defaults(repo):
    post = repo.append({"title": "Hello", "content": "<p>Hi</p>"})

    assert post["id"]
    assert post["title"] == "Hello"
    assert post["subtitle"] == ""
    assert post["headerImage"] == ""
    assert post["content"] == "<p>Hi</p>"
    assert post["createdAt"] == post["updatedAt"]
    assert post["createdAt"].endswith("Z")
    assert list(post) == ["id", "title", "subtitle", "headerImage", "content", "createdAt", "updatedAt"]


def test_append_ignores_client_supplied_id_and_extras(repo):
    post = repo.append({
        "id": "mine", "title": "T", "content": "C",
        "createdAt": "1999-01-01T00:00:00.000Z", "rating": 5,
    })
    assert post["id"] != "mine"
    assert post["createdAt"] != "1999-01-01T00:00:00.000Z"
    assert "rating" not in post


def test_sequential_appends_keep_order_and_unique_ids(repo, blogs_file):
    candidates = [
        {"title": f"Post {i}", "subtitle": f"sub {i}", "headerImage": f"/uploads/{i}.png",
         "content": f"<p>{i}</p>"}
        for i in range(20)
    ]
    for candidate in candidates:
        repo.append(candidate)

    posts = stored(blogs_file)
    assert len(posts) == 20
    assert len({p["id"] for p in posts}) == 20
    for candidate, post in zip(candidates, posts):
        for key, value in candidate.items():
            assert post[key] == value
    assert repo.list() == posts


def test_ids_stay_unique_when_clock_stalls():
    frozen = lambda: 1_700_000_000.0  # noqa: E731
    ids = [new_post_id(clock=frozen) for _ in range(5)]
    assert len(set(ids)) == 5
    assert ids == sorted(ids, key=int)


def test_missing_file_is_created_empty(repo, blogs_file):
    repo.ensure_storage()
    assert blogs_file.read_text(encoding="utf-8") == "[]"
    assert repo.list() == []


@pytest.mark.parametrize("garbage", ["{not json", '{"a": 1}', ""])
def test_corrupt_file_starts_fresh(repo, blogs_file, garbage, caplog):
    blogs_file.parent.mkdir(parents=True)
    blogs_file.write_text(garbage, encoding="utf-8")

    assert repo.list() == []
    post = repo.append({"title": "Fresh", "content": "<p>start</p>"})

    assert stored(blogs_file) == [post]
    assert "starting fresh" in caplog.text or "Error reading blogs file" in caplog.text


def test_write_failure_raises_persistence_error(repo, blogs_file, monkeypatch):
    repo.append({"title": "Kept", "content": "C"})

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(post_store.os, "replace", broken_replace)
    with pytest.raises(PersistenceError) as exc:
        repo.append({"title": "Lost", "content": "C"})
    assert exc.value.details == "disk full"

    monkeypatch.undo()
    assert [p["title"] for p in stored(blogs_file)] == ["Kept"]
    # No temporary files left behind
    assert sorted(p.name for p in blogs_file.parent.iterdir()) == ["blogs.json"]


def test_stale_version_is_rejected(repo):
    repo.append({"title": "One", "content": "C"})
    version = repo.version()
    repo.append({"title": "Two", "content": "C"}, expected_version=version)

    with pytest.raises(ConflictError):
        repo.append({"title": "Three", "content": "C"}, expected_version=version)
    assert [p["title"] for p in repo.list()] == ["One", "Two"]


def test_concurrent_appends_do_not_lose_updates(blogs_file):
    # Separate repository objects on the same file share one writer lock
    repos = [JsonFilePostRepository(str(blogs_file)) for _ in range(4)]

    def worker(r, n):
        for i in range(10):
            r.append({"title": f"{n}-{i}", "content": "C"})

    threads = [threading.Thread(target=worker, args=(r, n)) for n, r in enumerate(repos)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    posts = stored(blogs_file)
    assert len(posts) == 40
    assert len({p["id"] for p in posts}) == 40


def test_temp_file_failure_raises_persistence_error(repo, blogs_file, monkeypatch):
    repo.append({"title": "Kept", "content": "C"})

    def read_only(*args, **kwargs):
        raise OSError(30, "Read-only file system")

    monkeypatch.setattr(post_store.tempfile, "mkstemp", read_only)
    with pytest.raises(PersistenceError) as exc:
        repo.append({"title": "Lost", "content": "C"})
    assert "Read-only file system" in exc.value.details

    monkeypatch.undo()
    assert [p["title"] for p in stored(blogs_file)] == ["Kept"]


def test_ids_continue_past_stored_ids(repo, blogs_file):
    # A collection written while the clock ran ahead of the current one
    future_id = "99999999999999"
    blogs_file.parent.mkdir(parents=True)
    blogs_file.write_text(json.dumps([
        {"id": future_id, "title": "Old", "content": "C"},
        {"id": "legacy-slug", "title": "Older", "content": "C"},
    ]), encoding="utf-8")

    post = repo.append({"title": "New", "content": "C"})
    assert int(post["id"]) > int(future_id)


def test_new_post_id_respects_floor():
    frozen = lambda: 1_000.0  # noqa: E731
    assert int(new_post_id(clock=frozen, after=5_000_000)) > 5_000_000
