import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")

    # Post collection: a single JSON array on disk
    DATA_DIR = os.getenv("DATA_DIR", os.path.join(BASE_DIR, "data"))
    BLOGS_FILE = os.getenv("BLOGS_FILE", os.path.join(DATA_DIR, "blogs.json"))

    # Optional: store posts in a database instead (Postgres, SQLite, ...)
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(BASE_DIR, "static", "uploads"))
    UPLOAD_URL_PREFIX = "/uploads/"
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25 MB

    ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
