import json, os, tempfile, threading

from .config import DB_PATH


def _ensure_shape(data):
    if "users" not in data: data["users"] = {}
    if "refs" not in data: data["refs"] = {}
    return data


class JsonStore:
    """User records and referral codes in one JSON document.

    Every call is a full read-modify-write under a lock. Read and write errors
    (missing permissions, a corrupt file) are not swallowed.
    """

    def __init__(self, path: str = DB_PATH):
        self.path = path
        self._lock = threading.Lock()

    def _load(self):
        if not os.path.exists(self.path):
            return _ensure_shape({})
        with open(self.path, "r", encoding="utf-8") as f:
            return _ensure_shape(json.load(f))

    def _save(self, data):
        # write beside the target and swap in, a crash never leaves half a file
        fd, tmp = tempfile.mkstemp(prefix=".db-", suffix=".tmp", dir=os.path.dirname(os.path.abspath(self.path)))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    # ---- user state ----
    def load_state(self, user_id: int):
        with self._lock:
            return self._load()["users"].get(str(user_id))

    def save_state(self, user_id: int, state: dict):
        with self._lock:
            db = self._load()
            db["users"][str(user_id)] = state
            self._save(db)

    # ---- referral codes ----
    def get_ref(self, code: str):
        with self._lock:
            owner = self._load()["refs"].get(code)
        return int(owner) if owner is not None else None

    def put_ref(self, code: str, user_id: int) -> bool:
        """Store ``code -> user_id`` unless the code is already taken."""
        with self._lock:
            db = self._load()
            if code in db["refs"]:
                return int(db["refs"][code]) == user_id
            db["refs"][code] = user_id
            self._save(db)
            return True
