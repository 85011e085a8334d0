"""Configuration settings for the storage node."""

import os


DATA_DIR = os.environ.get("STASH_DATA_DIR", "./data")

BLOB_DIR = os.environ.get("STASH_BLOB_DIR", os.path.join(DATA_DIR, "uploads"))

CATALOG_PATH = os.environ.get("STASH_CATALOG_PATH", os.path.join(DATA_DIR, "files_db.json"))

STATIC_DIR = os.environ.get("STASH_STATIC_DIR", "./dist/public")

NODE_HOST = os.environ.get("STASH_HOST", "0.0.0.0")

NODE_PORT = int(os.environ.get("STASH_PORT", "3000"))

MAX_UPLOAD_BYTES = int(os.environ.get("STASH_MAX_UPLOAD_BYTES", str(1024 * 1024 * 1024)))

UPLOAD_PIECE_SIZE = 64 * 1024
