import pytest

from app import create_app
from asset_store import AssetStore
from post_store import JsonFilePostRepository


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": None,
        "BLOGS_FILE": str(tmp_path / "data" / "blogs.json"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def blogs_file(tmp_path):
    return tmp_path / "data" / "blogs.json"


@pytest.fixture
def repo(blogs_file):
    return JsonFilePostRepository(str(blogs_file))


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def assets(upload_dir):
    return AssetStore(str(upload_dir))
