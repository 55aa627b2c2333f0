import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ...domain.errors import Conflict, UpstreamUnavailable
from ...domain.models import (
    Challenge,
    ChallengePurpose,
    ChallengeStatus,
    Product,
    Shop,
    User,
    UserStatus,
)
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

_PRODUCT_COLUMNS = ("name", "sku", "price", "stock", "unit", "tax_rate", "description")


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Path, timeout: float = 5.0) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, timeout=timeout, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._timeout = timeout
        self._depth = 0
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                PRAGMA foreign_keys = ON;

                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    password_hash TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    google_id TEXT UNIQUE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS challenges (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    purpose TEXT NOT NULL,
                    code_hash TEXT NOT NULL,
                    status TEXT NOT NULL,
                    attempts INTEGER NOT NULL DEFAULT 0,
                    resend_count INTEGER NOT NULL DEFAULT 0,
                    expires_at TEXT NOT NULL,
                    last_sent_at TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE(user_id, purpose),
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS shops (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    domain TEXT,
                    contact_email TEXT,
                    address TEXT,
                    parent_id INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(owner_id) REFERENCES users(id) ON DELETE CASCADE,
                    FOREIGN KEY(parent_id) REFERENCES shops(id) ON DELETE SET NULL
                );

                CREATE INDEX IF NOT EXISTS idx_shops_owner ON shops(owner_id);

                CREATE TABLE IF NOT EXISTS products (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    shop_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    sku TEXT,
                    price REAL NOT NULL,
                    stock INTEGER NOT NULL DEFAULT 0,
                    unit TEXT,
                    tax_rate REAL,
                    description TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(shop_id) REFERENCES shops(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_products_shop ON products(shop_id);
                """
            )

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def atomic(self) -> Iterator[sqlite3.Connection]:
        """Hold the store lock for the block and commit once, at the outermost level."""
        if not self._lock.acquire(timeout=self._timeout):
            raise UpstreamUnavailable("Database is busy, please retry")
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield self._conn
            if outermost:
                self._conn.commit()
        except sqlite3.OperationalError as exc:
            if outermost:
                self._conn.rollback()
            logger.error("SQLite operation failed: %s", exc)
            raise UpstreamUnavailable() from exc
        except BaseException:
            if outermost:
                self._conn.rollback()
            raise
        finally:
            self._depth -= 1
            self._lock.release()

    # UserRepository API ----------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[User]:
        with self.atomic():
            cur = self._conn.execute("SELECT * FROM users WHERE email = ?", (email.lower(),))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self.atomic():
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_google_id(self, google_id: str) -> Optional[User]:
        with self.atomic():
            cur = self._conn.execute("SELECT * FROM users WHERE google_id = ?", (google_id,))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def create_user(
        self,
        email: str,
        name: str,
        password_hash: Optional[str],
        *,
        verified: bool = False,
        google_id: Optional[str] = None,
    ) -> User:
        now = self._now()
        status = UserStatus.VERIFIED if verified else UserStatus.PENDING
        try:
            with self.atomic():
                cur = self._conn.execute(
                    """
                    INSERT INTO users (
                        email, name, password_hash, status, google_id, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (email.lower(), name, password_hash, status.value, google_id, now, now),
                )
                cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,))
                row = cur.fetchone()
        except sqlite3.IntegrityError as exc:
            raise Conflict("An account with this email already exists") from exc
        if not row:
            raise RuntimeError("Failed to persist user.")
        return self._row_to_user(row)

    def update_user(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        password_hash: Optional[str] = None,
        verified: Optional[bool] = None,
        google_id: Optional[str] = None,
        clear_password: bool = False,
    ) -> User:
        updates = []
        params: List[Any] = []
        if name is not None:
            updates.append("name = ?")
            params.append(name)
        if clear_password:
            updates.append("password_hash = NULL")
        elif password_hash is not None:
            updates.append("password_hash = ?")
            params.append(password_hash)
        if verified is not None:
            updates.append("status = ?")
            params.append((UserStatus.VERIFIED if verified else UserStatus.PENDING).value)
        if google_id is not None:
            updates.append("google_id = ?")
            params.append(google_id)

        with self.atomic():
            if updates:
                updates.append("updated_at = ?")
                params.append(self._now())
                params.append(user_id)
                self._conn.execute(f"UPDATE users SET {', '.join(updates)} WHERE id = ?", params)
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
        if not row:
            raise ValueError(f"User {user_id} not found.")
        return self._row_to_user(row)

    # ChallengeRepository API -----------------------------------------------
    def get_challenge(self, user_id: int, purpose: ChallengePurpose) -> Optional[Challenge]:
        with self.atomic():
            cur = self._conn.execute(
                "SELECT * FROM challenges WHERE user_id = ? AND purpose = ?",
                (user_id, purpose.value),
            )
            row = cur.fetchone()
        return self._row_to_challenge(row) if row else None

    def save_challenge(
        self,
        user_id: int,
        purpose: ChallengePurpose,
        code_hash: str,
        status: ChallengeStatus,
        expires_at: datetime,
        sent_at: datetime,
        resend_count: int = 0,
    ) -> Challenge:
        # A fresh row id per issue makes any in-flight transition on the old code a no-op.
        with self.atomic():
            self._conn.execute(
                "DELETE FROM challenges WHERE user_id = ? AND purpose = ?",
                (user_id, purpose.value),
            )
            cur = self._conn.execute(
                """
                INSERT INTO challenges (
                    user_id, purpose, code_hash, status, attempts, resend_count,
                    expires_at, last_sent_at, created_at
                )
                VALUES (?, ?, ?, ?, 0, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    purpose.value,
                    code_hash,
                    status.value,
                    resend_count,
                    expires_at.isoformat(),
                    sent_at.isoformat(),
                    self._now(),
                ),
            )
            cur = self._conn.execute("SELECT * FROM challenges WHERE id = ?", (cur.lastrowid,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist challenge.")
        return self._row_to_challenge(row)

    def record_failed_attempt(self, challenge_id: int, max_attempts: int) -> Optional[Challenge]:
        with self.atomic():
            self._conn.execute(
                """
                UPDATE challenges
                SET attempts = attempts + 1,
                    status = CASE WHEN attempts + 1 >= ? THEN ? ELSE status END
                WHERE id = ? AND status = ?
                """,
                (
                    max_attempts,
                    ChallengeStatus.EXHAUSTED.value,
                    challenge_id,
                    ChallengeStatus.PENDING.value,
                ),
            )
            cur = self._conn.execute("SELECT * FROM challenges WHERE id = ?", (challenge_id,))
            row = cur.fetchone()
        return self._row_to_challenge(row) if row else None

    def transition_challenge(
        self,
        challenge_id: int,
        from_status: ChallengeStatus,
        to_status: ChallengeStatus,
        *,
        expires_at: Optional[datetime] = None,
    ) -> bool:
        with self.atomic():
            cur = self._conn.execute(
                """
                UPDATE challenges
                SET status = ?, expires_at = COALESCE(?, expires_at)
                WHERE id = ? AND status = ?
                """,
                (
                    to_status.value,
                    expires_at.isoformat() if expires_at else None,
                    challenge_id,
                    from_status.value,
                ),
            )
            return cur.rowcount == 1

    # ShopRepository API ----------------------------------------------------
    def create_shop(
        self,
        owner_id: int,
        name: str,
        *,
        description: Optional[str] = None,
        domain: Optional[str] = None,
        contact_email: Optional[str] = None,
        address: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> Shop:
        now = self._now()
        with self.atomic():
            cur = self._conn.execute(
                """
                INSERT INTO shops (
                    owner_id, name, description, domain, contact_email, address,
                    parent_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (owner_id, name, description, domain, contact_email, address, parent_id, now, now),
            )
            cur = self._conn.execute("SELECT * FROM shops WHERE id = ?", (cur.lastrowid,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist shop.")
        return self._row_to_shop(row)

    def get_shop(self, shop_id: int) -> Optional[Shop]:
        with self.atomic():
            cur = self._conn.execute("SELECT * FROM shops WHERE id = ?", (shop_id,))
            row = cur.fetchone()
        return self._row_to_shop(row) if row else None

    def get_shops_by_owner(self, owner_id: int) -> List[Shop]:
        with self.atomic():
            cur = self._conn.execute(
                "SELECT * FROM shops WHERE owner_id = ? ORDER BY created_at ASC, id ASC",
                (owner_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_shop(row) for row in rows]

    # ProductRepository API -------------------------------------------------
    def create_product(self, shop_id: int, name: str, price: float, **fields: Any) -> Product:
        now = self._now()
        with self.atomic():
            cur = self._conn.execute(
                """
                INSERT INTO products (
                    shop_id, name, sku, price, stock, unit, tax_rate, description,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    shop_id,
                    name,
                    fields.get("sku"),
                    price,
                    fields.get("stock") or 0,
                    fields.get("unit"),
                    fields.get("tax_rate"),
                    fields.get("description"),
                    now,
                    now,
                ),
            )
            cur = self._conn.execute("SELECT * FROM products WHERE id = ?", (cur.lastrowid,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist product.")
        return self._row_to_product(row)

    def get_product(self, product_id: int) -> Optional[Product]:
        with self.atomic():
            cur = self._conn.execute("SELECT * FROM products WHERE id = ?", (product_id,))
            row = cur.fetchone()
        return self._row_to_product(row) if row else None

    def get_products_by_shop(self, shop_id: int) -> List[Product]:
        with self.atomic():
            cur = self._conn.execute(
                "SELECT * FROM products WHERE shop_id = ? ORDER BY created_at DESC, id DESC",
                (shop_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_product(row) for row in rows]

    def update_product(self, product_id: int, fields: Dict[str, Any]) -> Product:
        updates = []
        params: List[Any] = []
        for column in _PRODUCT_COLUMNS:
            if column in fields:
                updates.append(f"{column} = ?")
                params.append(fields[column])

        with self.atomic():
            if updates:
                updates.append("updated_at = ?")
                params.append(self._now())
                params.append(product_id)
                self._conn.execute(
                    f"UPDATE products SET {', '.join(updates)} WHERE id = ?", params
                )
            cur = self._conn.execute("SELECT * FROM products WHERE id = ?", (product_id,))
            row = cur.fetchone()
        if not row:
            raise ValueError(f"Product {product_id} not found.")
        return self._row_to_product(row)

    def delete_product(self, product_id: int) -> None:
        with self.atomic():
            self._conn.execute("DELETE FROM products WHERE id = ?", (product_id,))

    # Helpers ----------------------------------------------------------------
    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def _parse_datetime(value: str) -> datetime:
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            password_hash=row["password_hash"],
            status=UserStatus(row["status"]),
            google_id=row["google_id"],
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_challenge(self, row: sqlite3.Row) -> Challenge:
        return Challenge(
            id=row["id"],
            user_id=row["user_id"],
            purpose=ChallengePurpose(row["purpose"]),
            code_hash=row["code_hash"],
            status=ChallengeStatus(row["status"]),
            attempts=row["attempts"],
            resend_count=row["resend_count"],
            expires_at=self._parse_datetime(row["expires_at"]),
            last_sent_at=self._parse_datetime(row["last_sent_at"]),
            created_at=self._parse_datetime(row["created_at"]),
        )

    def _row_to_shop(self, row: sqlite3.Row) -> Shop:
        return Shop(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            description=row["description"],
            domain=row["domain"],
            contact_email=row["contact_email"],
            address=row["address"],
            parent_id=row["parent_id"],
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_product(self, row: sqlite3.Row) -> Product:
        return Product(
            id=row["id"],
            shop_id=row["shop_id"],
            name=row["name"],
            sku=row["sku"],
            price=row["price"],
            stock=row["stock"],
            unit=row["unit"],
            tax_rate=row["tax_rate"],
            description=row["description"],
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
