# rback/config.py
import os

# --- dotenv (safe optional) ---
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass


# BOOL / INT PARSERS
def _bool(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _int(name, default):
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


# KUBERNETES ACCESS
# None lets the kubernetes client fall back to $KUBECONFIG / ~/.kube/config
KUBECONFIG = os.getenv("RBACK_KUBECONFIG") or None
KUBE_CONTEXT = os.getenv("RBACK_CONTEXT") or None


# FILTERING
# Comma-delimited; the literal "none" disables prefix exclusion
IGNORE_PREFIXES = os.getenv("RBACK_IGNORE_PREFIXES", "system:")


# RENDERING
SHOW_LEGEND = _bool("RBACK_SHOW_LEGEND", True)
RENDER_RULES = _bool("RBACK_RENDER_RULES", True)
OUTPUT_FORMAT = os.getenv("RBACK_OUTPUT_FORMAT", "dot").lower()
HTML_HEIGHT = os.getenv("RBACK_HTML_HEIGHT", "100vh")


# LOGGING
LOG_LEVEL = os.getenv("RBACK_LOG_LEVEL", "INFO").upper()


# SNAPSHOTS
FERNET_KEY = os.getenv("RBACK_FERNET_KEY") or None
MAX_SNAPSHOT_MB = _int("RBACK_MAX_SNAPSHOT_MB", 256)
