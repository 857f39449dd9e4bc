"""Chunk persistence.

The engine depends only on the ``ChunkRepository`` shape. Two
implementations are provided: an in-memory store and a SQLite store with one
row per chunk and the embedding serialized as JSON.
"""
import sqlite3
import json
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple
from datetime import datetime, timezone
import structlog

from ragcore import config
from ragcore.rag.document import Chunk

logger = structlog.get_logger()


class ChunkRepository(Protocol):
    """Persistence capability for per-document chunk sets."""

    def save(self, document_id: str, chunks: Sequence[Chunk]) -> None:
        ...

    def load(self, document_id: str) -> List[Chunk]:
        ...

    def delete(self, document_id: str) -> int:
        ...


class InMemoryChunkRepository:
    """Dictionary-backed repository; each save replaces the stored tuple."""

    def __init__(self):
        self._documents: Dict[str, Tuple[Chunk, ...]] = {}

    def save(self, document_id: str, chunks: Sequence[Chunk]) -> None:
        self._documents[document_id] = tuple(chunks)

    def load(self, document_id: str) -> List[Chunk]:
        return list(self._documents.get(document_id, ()))

    def delete(self, document_id: str) -> int:
        return len(self._documents.pop(document_id, ()))

    def document_ids(self) -> List[str]:
        return list(self._documents)


class SQLiteChunkRepository:
    """SQLite-backed repository."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the repository and create its schema.

        Args:
            db_path: Database file (default from config)
        """
        self.db_path = Path(db_path or config.DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_database()

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database.

        Returns:
            sqlite3.Connection with row_factory set to sqlite3.Row
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self) -> None:
        """Create the chunks table if it doesn't exist."""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_id TEXT NOT NULL,
                    chunk_index INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    start_index INTEGER NOT NULL,
                    end_index INTEGER NOT NULL,
                    embedding_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE(document_id, chunk_index)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_chunks_document_id
                ON chunks(document_id)
            """)

            conn.commit()
            logger.debug("database_initialized", db_path=str(self.db_path))

        except Exception as e:
            conn.rollback()
            logger.error("database_init_failed", error=str(e))
            raise
        finally:
            conn.close()

    def save(self, document_id: str, chunks: Sequence[Chunk]) -> None:
        """Replace a document's chunks in a single transaction.

        Args:
            document_id: Document the chunks belong to
            chunks: New chunk set (may be empty)
        """
        conn = self.get_connection()
        cursor = conn.cursor()
        created_at = datetime.now(timezone.utc).isoformat()

        try:
            cursor.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            cursor.executemany("""
                INSERT INTO chunks (
                    document_id, chunk_index, content,
                    start_index, end_index, embedding_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                (
                    document_id,
                    chunk.chunk_index,
                    chunk.content,
                    chunk.start_index,
                    chunk.end_index,
                    json.dumps(list(chunk.embedding)),
                    created_at,
                )
                for chunk in chunks
            ])

            conn.commit()
            logger.info("chunks_saved", document_id=document_id, count=len(chunks))

        except Exception as e:
            conn.rollback()
            logger.error("chunks_save_failed", error=str(e), document_id=document_id)
            raise
        finally:
            conn.close()

    def load(self, document_id: str) -> List[Chunk]:
        """Load a document's chunks ordered by chunk index."""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT document_id, chunk_index, content,
                       start_index, end_index, embedding_json
                FROM chunks
                WHERE document_id = ?
                ORDER BY chunk_index
            """, (document_id,))

            return [
                Chunk(
                    document_id=row["document_id"],
                    content=row["content"],
                    start_index=row["start_index"],
                    end_index=row["end_index"],
                    chunk_index=row["chunk_index"],
                    embedding=tuple(json.loads(row["embedding_json"])),
                )
                for row in cursor.fetchall()
            ]

        except Exception as e:
            logger.error("chunks_load_failed", error=str(e), document_id=document_id)
            raise
        finally:
            conn.close()

    def delete(self, document_id: str) -> int:
        """Delete a document's chunks.

        Returns:
            Number of chunks deleted
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            conn.commit()

            logger.info("chunks_deleted", document_id=document_id, count=cursor.rowcount)
            return cursor.rowcount

        except Exception as e:
            conn.rollback()
            logger.error("chunks_delete_failed", error=str(e), document_id=document_id)
            raise
        finally:
            conn.close()

    def document_ids(self) -> List[str]:
        """Ids of all documents with stored chunks."""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT DISTINCT document_id FROM chunks ORDER BY document_id")
            return [row[0] for row in cursor.fetchall()]
        finally:
            conn.close()
