# cryptoadmin/database.py
"""
File-backed document store. Stands in for the remote document database the
admin page talks to: documents are addressed by (collection, document_id) and
written with merge semantics.

Each collection is one CSV file inside DATA_DIR. Every field value is stored
JSON-encoded so lists (e.g. watchlist coins) and empty strings survive the
round trip; an empty cell means "field absent". Reads and writes hold a
file lock.

Usage:
    from cryptoadmin.database import store
    snap = await store.get("watchlist", uid)
    await store.set("settings", "app", {"announcement": "hi"}, merge=True)
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from fastapi.concurrency import run_in_threadpool
from filelock import FileLock, Timeout

from cryptoadmin.config import settings

logger = logging.getLogger(__name__)

ID_COLUMN = "_id"


class StoreError(Exception):
    """Any failed read or write against the document store."""


@dataclass
class DocumentSnapshot:
    id: str
    exists: bool = False
    data: Dict[str, Any] = field(default_factory=dict)


class FileBackedDocumentStore:
    """
    Manages one CSV file per collection inside data_dir.
    """

    def __init__(self, data_dir: Optional[Path] = None, lock_timeout: Optional[float] = None):
        self._data_dir = Path(data_dir) if data_dir is not None else None
        self.lock_timeout = settings.STORE_LOCK_TIMEOUT if lock_timeout is None else lock_timeout

    @property
    def data_dir(self) -> Path:
        # resolved lazily so tests can repoint settings.DATA_DIR
        return self._data_dir if self._data_dir is not None else Path(settings.DATA_DIR)

    def _file_path(self, name: str) -> Path:
        if name.endswith(".csv"):
            return self.data_dir / name
        return self.data_dir / f"{name}.csv"

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock", timeout=self.lock_timeout)

    def _read_df(self, path: Path) -> pd.DataFrame:
        if not path.exists():
            return pd.DataFrame(columns=[ID_COLUMN])
        df = pd.read_csv(path, dtype=str, keep_default_na=False).fillna("")
        if ID_COLUMN not in df.columns:
            raise StoreError(f"{path.name} is not a document collection (missing {ID_COLUMN} column)")
        return df

    def _write_df_nolock(self, path: Path, df: pd.DataFrame) -> None:
        """Caller must hold the lock for `path`."""
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)

    @staticmethod
    def _decode_row(row: Dict[str, Any]) -> Dict[str, Any]:
        data = {}
        for k, v in row.items():
            if k == ID_COLUMN or v == "":
                continue
            data[k] = json.loads(v)
        return data

    # --- sync primitives (run in the threadpool by the async API) ---

    def get_sync(self, collection: str, doc_id: str) -> DocumentSnapshot:
        path = self._file_path(collection)
        if not path.exists():
            return DocumentSnapshot(id=str(doc_id))
        try:
            # writers rewrite the file in place
            with self._lock_for(path):
                df = self._read_df(path)
            mask = df[ID_COLUMN] == str(doc_id)
            if not mask.any():
                return DocumentSnapshot(id=str(doc_id))
            row = df[mask].iloc[0].to_dict()
            return DocumentSnapshot(id=str(doc_id), exists=True, data=self._decode_row(row))
        except StoreError:
            raise
        except Timeout as e:
            logger.warning("Timed out waiting for lock on %s", path)
            raise StoreError(f"Store is busy, could not read {collection}/{doc_id}") from e
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.warning("Read of %s/%s failed: %s", collection, doc_id, e)
            raise StoreError(f"Failed to read {collection}/{doc_id}: {e}") from e

    def set_sync(self, collection: str, doc_id: str, fields: Dict[str, Any], merge: bool = True) -> None:
        """
        Write `fields` into the document. With merge=True only the named fields
        change; with merge=False the document is replaced by `fields`.
        """
        path = self._file_path(collection)
        try:
            with self._lock_for(path):
                df = self._read_df(path)
                encoded = {k: json.dumps(v, ensure_ascii=False) for k, v in fields.items()}
                for k in encoded:
                    if k not in df.columns:
                        df[k] = ""
                mask = df[ID_COLUMN] == str(doc_id)
                if mask.any():
                    if not merge:
                        for col in df.columns:
                            if col != ID_COLUMN:
                                df.loc[mask, col] = ""
                    for k, v in encoded.items():
                        df.loc[mask, k] = v
                else:
                    new_row = {col: "" for col in df.columns}
                    new_row.update(encoded)
                    new_row[ID_COLUMN] = str(doc_id)
                    df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True, sort=False)
                self._write_df_nolock(path, df)
        except StoreError:
            raise
        except Timeout as e:
            logger.warning("Timed out waiting for lock on %s", path)
            raise StoreError(f"Store is busy, could not write {collection}/{doc_id}") from e
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.warning("Write of %s/%s failed: %s", collection, doc_id, e)
            raise StoreError(f"Failed to write {collection}/{doc_id}: {e}") from e

    def list_records(self, filename: str) -> List[Dict[str, Any]]:
        """
        Read a plain CSV table (not a document collection), e.g. the coin catalog.
        Missing file -> [].
        """
        path = self._file_path(filename)
        if not path.exists():
            return []
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False).fillna("")
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise StoreError(f"Failed to read {filename}: {e}") from e
        if df.empty:
            return []
        return df.to_dict(orient="records")

    # --- async API used by the admin page ---

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        return await run_in_threadpool(self.get_sync, collection, doc_id)

    async def set(self, collection: str, doc_id: str, fields: Dict[str, Any], merge: bool = True) -> None:
        await run_in_threadpool(self.set_sync, collection, doc_id, fields, merge)


# module-level singleton for convenience
store = FileBackedDocumentStore()
