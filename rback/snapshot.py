# rback/snapshot.py
"""
Read RBAC snapshots from disk.

A snapshot is the JSON written by

    kubectl get serviceaccounts,roles,rolebindings,clusterroles,clusterrolebindings \
        --all-namespaces --output json

either as plaintext or encrypted with Fernet (".enc" suffix, key taken from
RBACK_FERNET_KEY). Snapshots are only ever read; rback never writes state.
"""
import json
import logging
import os

from cryptography.fernet import Fernet, InvalidToken

from rback import config
from rback.errors import ResolutionError, RetrievalError

logger = logging.getLogger("snapshot")
logger.setLevel(config.LOG_LEVEL)
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())

ENCRYPTED_SUFFIX = ".enc"


def _read_bytes(path):
    if not path or not os.path.exists(path):
        raise RetrievalError(f"Snapshot not found: {path}")
    size_mb = os.path.getsize(path) / (1024 * 1024)
    if size_mb > config.MAX_SNAPSHOT_MB:
        raise RetrievalError(f"Snapshot {path} is {size_mb:.0f} MB, above RBACK_MAX_SNAPSHOT_MB={config.MAX_SNAPSHOT_MB}")
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except OSError as e:
        raise RetrievalError(f"Can't read snapshot {path}: {e}") from e


def _decrypt(raw, path, key=None):
    key = key or config.FERNET_KEY
    if not key:
        raise RetrievalError(f"{path} is encrypted but RBACK_FERNET_KEY is not set")
    try:
        f = Fernet(key.encode() if isinstance(key, str) else key)
    except ValueError as e:
        raise RetrievalError(f"Invalid Fernet key: {e}") from e
    try:
        return f.decrypt(raw)
    except InvalidToken as e:
        raise ResolutionError(f"Can't decrypt {path}: wrong key or corrupted file") from e


def load_snapshot(path, key=None):
    """
    Load a snapshot document:
      - '.enc' files are decrypted with the Fernet key (argument or config)
      - everything else is read as plaintext JSON
    Returns the parsed JSON document.
    """
    raw = _read_bytes(path)
    if path.endswith(ENCRYPTED_SUFFIX):
        raw = _decrypt(raw, path, key=key)
    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ResolutionError(f"Snapshot {path} is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ResolutionError(f"Snapshot {path} must hold a JSON object, got {type(doc).__name__}")
    logger.debug(f"Loaded snapshot {path} ({len(raw)} bytes)")
    return doc
