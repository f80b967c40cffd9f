import os
import tempfile

# Keep the module-level settings, engine and log files away from the checkout
_root = tempfile.mkdtemp(prefix="mediavault-tests-")
os.environ.setdefault("DATA_DIR", os.path.join(_root, "data"))
os.environ.setdefault("LOGS_DIR", os.path.join(_root, "logs"))
os.environ.setdefault("SAVE_DIR", os.path.join(_root, "media"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_root}/mediavault.db")
os.environ.setdefault("TMDB_API_KEY", "")
