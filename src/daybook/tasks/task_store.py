# src/daybook/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from .task_models import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_PROJECT_COLOR,
    Category,
    Comment,
    Project,
    Subtask,
    Task,
    TaskFilter,
    TaskPriority,
    TaskStatus,
    TodaySubtask,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()

# Tasks the caller owns; used to scope subtasks and comments through their parent.
_OWNED_TASK_IDS = "SELECT id FROM tasks WHERE user_id = ?"


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


class TaskStore:
    """
    SQLite store for categories, projects, tasks, subtasks and comments.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Scoping:
    - every public method takes the owning user_id
    - subtasks/comments are scoped through their parent task
    - a foreign id looks exactly like a missing one (None / False)

    Thread-safety:
    - each method opens its own SQLite connection,
      unless the calling thread is inside atomic()
    """

    def __init__(
        self,
        db_path: str | Path = "daybook.sqlite3",
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._local = threading.local()
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.create_function("casefold", 1, _casefold, deterministic=True)

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """
        Connection for one store call.

        Inside atomic() this is the shared transaction connection and nothing is
        committed here; otherwise a fresh connection is committed and closed.
        """
        shared = getattr(self._local, "conn", None)
        if shared is not None:
            yield shared
            return

        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run several store calls as one write transaction.

        BEGIN IMMEDIATE takes the database write lock up front, so concurrent
        read-decide-write sequences (e.g. the completion cascade) run one after
        another. Nested blocks join the outer transaction.
        """
        if getattr(self._local, "conn", None) is not None:
            yield
            return

        conn = self._get_conn()
        conn.isolation_level = None
        conn.execute("BEGIN IMMEDIATE")
        self._local.conn = conn
        try:
            yield
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")
        finally:
            self._local.conn = None
            conn.close()

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    color TEXT NOT NULL DEFAULT '#3B82F6',
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS projects (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    color TEXT NOT NULL DEFAULT '#8B5CF6',
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    project_id INTEGER,
                    category_id INTEGER,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'todo',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    due_date INTEGER,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    is_today INTEGER NOT NULL DEFAULT 0,
                    completed_at INTEGER,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS subtasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    completed_at INTEGER,
                    "order" INTEGER NOT NULL DEFAULT 0,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS comments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    user_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s.%s", table, name)

            # Older databases predate the per-subtask "today" flag.
            add_col("subtasks", "is_today", "INTEGER NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_categories_user ON categories(user_id, name)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_projects_user ON projects(user_id, created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_created ON tasks(user_id, created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_due ON tasks(user_id, due_date)")
            cur.execute('CREATE INDEX IF NOT EXISTS idx_subtasks_task ON subtasks(task_id, "order")')
            cur.execute("CREATE INDEX IF NOT EXISTS idx_comments_task ON comments(task_id, created_at)")

            conn.commit()
        finally:
            conn.close()

    # ---- row mapping ----

    @staticmethod
    def _row_to_category(row: sqlite3.Row) -> Category:
        return Category(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            name=str(row["name"]),
            color=str(row["color"] or DEFAULT_CATEGORY_COLOR),
            created_at=int(row["created_at"]),
            updated_at=int(row["updated_at"]),
        )

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            name=str(row["name"]),
            description=row["description"],
            color=str(row["color"] or DEFAULT_PROJECT_COLOR),
            created_at=int(row["created_at"]),
            updated_at=int(row["updated_at"]),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            project_id=int(row["project_id"]) if row["project_id"] is not None else None,
            category_id=int(row["category_id"]) if row["category_id"] is not None else None,
            title=str(row["title"]),
            description=row["description"],
            status=TaskStatus.from_db(row["status"]),
            priority=TaskPriority.from_db(row["priority"]),
            due_date=int(row["due_date"]) if row["due_date"] is not None else None,
            is_completed=bool(row["is_completed"]),
            is_today=bool(row["is_today"]),
            completed_at=int(row["completed_at"]) if row["completed_at"] is not None else None,
            created_at=int(row["created_at"]),
            updated_at=int(row["updated_at"]),
        )

    @staticmethod
    def _row_to_subtask(row: sqlite3.Row) -> Subtask:
        return Subtask(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            title=str(row["title"]),
            is_completed=bool(row["is_completed"]),
            is_today=bool(row["is_today"]),
            completed_at=int(row["completed_at"]) if row["completed_at"] is not None else None,
            order=int(row["order"] or 0),
            created_at=int(row["created_at"]),
            updated_at=int(row["updated_at"]),
        )

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> Comment:
        return Comment(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            user_id=str(row["user_id"]),
            content=str(row["content"]),
            created_at=int(row["created_at"]),
            updated_at=int(row["updated_at"]),
        )

    @staticmethod
    def _fetch_one(conn: sqlite3.Connection, sql: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        cur = conn.execute(sql, params)
        return cur.fetchone()

    def _update_row(
        self,
        conn: sqlite3.Connection,
        table: str,
        fields: list[str],
        params: list[Any],
        where: str,
        where_params: tuple[Any, ...],
    ) -> bool:
        fields.append("updated_at = ?")
        params.append(self._now_ms())
        sql = f"UPDATE {table} SET {', '.join(fields)} WHERE {where}"
        cur = conn.execute(sql, (*params, *where_params))
        return cur.rowcount == 1

    # ---- stats ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    # ---- categories ----

    def add_category(self, user_id: str, *, name: str, color: str = DEFAULT_CATEGORY_COLOR) -> Category:
        if not name or not name.strip():
            raise ValueError("name is required")

        now = self._now_ms()
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO categories(user_id, name, color, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (user_id, name.strip(), color, now, now),
            )
            row = self._fetch_one(conn, "SELECT * FROM categories WHERE id = ?", (cur.lastrowid,))
        category = self._row_to_category(row)
        logger.debug("Category added id=%s user=%s", category.id, user_id)
        return category

    def get_category(self, category_id: int, user_id: str) -> Category | None:
        with self._connect() as conn:
            row = self._fetch_one(
                conn,
                "SELECT * FROM categories WHERE id = ? AND user_id = ?",
                (int(category_id), user_id),
            )
        return self._row_to_category(row) if row else None

    def list_categories(self, user_id: str) -> list[Category]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM categories WHERE user_id = ? ORDER BY name ASC, id ASC",
                (user_id,),
            ).fetchall()
        return [self._row_to_category(r) for r in rows]

    def update_category(
        self,
        category_id: int,
        user_id: str,
        *,
        name: str | None = None,
        color: str | None = None,
    ) -> Category | None:
        fields: list[str] = []
        params: list[Any] = []

        if name is not None:
            fields.append("name = ?")
            params.append(name.strip())

        if color is not None:
            fields.append("color = ?")
            params.append(color)

        if not fields:
            return self.get_category(category_id, user_id)

        with self._connect() as conn:
            if not self._update_row(
                conn, "categories", fields, params, "id = ? AND user_id = ?", (int(category_id), user_id)
            ):
                return None
            row = self._fetch_one(conn, "SELECT * FROM categories WHERE id = ?", (int(category_id),))
        return self._row_to_category(row)

    def delete_category(self, category_id: int, user_id: str) -> bool:
        """Delete a category and detach (not delete) the tasks that reference it."""
        now = self._now_ms()
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM categories WHERE id = ? AND user_id = ?",
                (int(category_id), user_id),
            )
            if cur.rowcount != 1:
                return False
            detached = conn.execute(
                "UPDATE tasks SET category_id = NULL, updated_at = ? WHERE category_id = ? AND user_id = ?",
                (now, int(category_id), user_id),
            ).rowcount
        logger.debug("Category deleted id=%s user=%s detached_tasks=%s", category_id, user_id, detached)
        return True

    # ---- projects ----

    def add_project(
        self,
        user_id: str,
        *,
        name: str,
        description: str | None = None,
        color: str = DEFAULT_PROJECT_COLOR,
    ) -> Project:
        if not name or not name.strip():
            raise ValueError("name is required")

        now = self._now_ms()
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO projects(user_id, name, description, color, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, name.strip(), description, color, now, now),
            )
            row = self._fetch_one(conn, "SELECT * FROM projects WHERE id = ?", (cur.lastrowid,))
        project = self._row_to_project(row)
        logger.debug("Project added id=%s user=%s", project.id, user_id)
        return project

    def get_project(self, project_id: int, user_id: str) -> Project | None:
        with self._connect() as conn:
            row = self._fetch_one(
                conn,
                "SELECT * FROM projects WHERE id = ? AND user_id = ?",
                (int(project_id), user_id),
            )
        return self._row_to_project(row) if row else None

    def list_projects(self, user_id: str) -> list[Project]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM projects WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_project(r) for r in rows]

    def update_project(
        self,
        project_id: int,
        user_id: str,
        *,
        name: str | None = None,
        description: str | None | Any = _UNSET,
        color: str | None = None,
    ) -> Project | None:
        fields: list[str] = []
        params: list[Any] = []

        if name is not None:
            fields.append("name = ?")
            params.append(name.strip())

        if description is not _UNSET:
            fields.append("description = ?")
            params.append(description)

        if color is not None:
            fields.append("color = ?")
            params.append(color)

        if not fields:
            return self.get_project(project_id, user_id)

        with self._connect() as conn:
            if not self._update_row(
                conn, "projects", fields, params, "id = ? AND user_id = ?", (int(project_id), user_id)
            ):
                return None
            row = self._fetch_one(conn, "SELECT * FROM projects WHERE id = ?", (int(project_id),))
        return self._row_to_project(row)

    def delete_project(self, project_id: int, user_id: str) -> bool:
        """Delete a project and detach (not delete) its tasks."""
        now = self._now_ms()
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM projects WHERE id = ? AND user_id = ?",
                (int(project_id), user_id),
            )
            if cur.rowcount != 1:
                return False
            detached = conn.execute(
                "UPDATE tasks SET project_id = NULL, updated_at = ? WHERE project_id = ? AND user_id = ?",
                (now, int(project_id), user_id),
            ).rowcount
        logger.debug("Project deleted id=%s user=%s detached_tasks=%s", project_id, user_id, detached)
        return True

    # ---- tasks ----

    def add_task(
        self,
        user_id: str,
        *,
        title: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: int | None = None,
        is_today: bool = False,
        is_completed: bool = False,
        completed_at: int | None = None,
        project_id: int | None = None,
        category_id: int | None = None,
    ) -> Task:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = self._now_ms()
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks(
                    user_id, project_id, category_id, title, description,
                    status, priority, due_date, is_completed, is_today, completed_at,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    project_id,
                    category_id,
                    title.strip(),
                    description,
                    TaskStatus(status).value,
                    TaskPriority(priority).value,
                    due_date,
                    int(bool(is_completed)),
                    int(bool(is_today)),
                    completed_at,
                    now,
                    now,
                ),
            )
            row = self._fetch_one(conn, "SELECT * FROM tasks WHERE id = ?", (cur.lastrowid,))
        task = self._row_to_task(row)
        logger.debug(
            "Task added id=%s user=%s status=%s priority=%s due=%s",
            task.id,
            user_id,
            task.status.value,
            task.priority.value,
            task.due_date,
        )
        return task

    def get_task(self, task_id: int, user_id: str) -> Task | None:
        with self._connect() as conn:
            row = self._fetch_one(
                conn,
                "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
                (int(task_id), user_id),
            )
        return self._row_to_task(row) if row else None

    def list_tasks(self, user_id: str, flt: TaskFilter | None = None) -> list[Task]:
        """
        List the user's tasks, newest first.

        Search is a case-insensitive substring match on title OR description.
        Due-date bounds are inclusive.
        """
        flt = flt or TaskFilter()
        conditions = ["user_id = ?"]
        params: list[Any] = [user_id]

        if flt.statuses:
            values = sorted(TaskStatus(s).value for s in flt.statuses)
            conditions.append(f"status IN ({','.join('?' for _ in values)})")
            params.extend(values)

        if flt.priorities:
            values = sorted(TaskPriority(p).value for p in flt.priorities)
            conditions.append(f"priority IN ({','.join('?' for _ in values)})")
            params.extend(values)

        if flt.category_id is not None:
            conditions.append("category_id = ?")
            params.append(int(flt.category_id))

        if flt.project_id is not None:
            conditions.append("project_id = ?")
            params.append(int(flt.project_id))

        if flt.is_today is not None:
            conditions.append("is_today = ?")
            params.append(int(flt.is_today))

        if flt.search:
            needle = flt.search.casefold()
            conditions.append(
                "(instr(casefold(title), ?) > 0 OR instr(casefold(COALESCE(description, '')), ?) > 0)"
            )
            params.extend([needle, needle])

        if flt.due_from is not None:
            conditions.append("due_date >= ?")
            params.append(int(flt.due_from))

        if flt.due_to is not None:
            conditions.append("due_date <= ?")
            params.append(int(flt.due_to))

        if flt.created_from is not None:
            conditions.append("created_at >= ?")
            params.append(int(flt.created_from))

        sql = f"SELECT * FROM tasks WHERE {' AND '.join(conditions)} ORDER BY created_at DESC, id DESC"
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_task(r) for r in rows]

    def update_task(
        self,
        task_id: int,
        user_id: str,
        *,
        title: str | None = None,
        description: str | None | Any = _UNSET,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        due_date: int | None | Any = _UNSET,
        is_today: bool | None = None,
        is_completed: bool | None = None,
        completed_at: int | None | Any = _UNSET,
        project_id: int | None | Any = _UNSET,
        category_id: int | None | Any = _UNSET,
    ) -> Task | None:
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            fields.append("title = ?")
            params.append(title.strip())

        if description is not _UNSET:
            fields.append("description = ?")
            params.append(description)

        if status is not None:
            fields.append("status = ?")
            params.append(TaskStatus(status).value)

        if priority is not None:
            fields.append("priority = ?")
            params.append(TaskPriority(priority).value)

        if due_date is not _UNSET:
            fields.append("due_date = ?")
            params.append(due_date)

        if is_today is not None:
            fields.append("is_today = ?")
            params.append(int(bool(is_today)))

        if is_completed is not None:
            fields.append("is_completed = ?")
            params.append(int(bool(is_completed)))

        if completed_at is not _UNSET:
            fields.append("completed_at = ?")
            params.append(completed_at)

        if project_id is not _UNSET:
            fields.append("project_id = ?")
            params.append(project_id)

        if category_id is not _UNSET:
            fields.append("category_id = ?")
            params.append(category_id)

        if not fields:
            return self.get_task(task_id, user_id)

        with self._connect() as conn:
            if not self._update_row(conn, "tasks", fields, params, "id = ? AND user_id = ?", (int(task_id), user_id)):
                return None
            row = self._fetch_one(conn, "SELECT * FROM tasks WHERE id = ?", (int(task_id),))
        logger.debug("Task update id=%s fields=%s", task_id, fields)
        return self._row_to_task(row)

    def delete_task(self, task_id: int, user_id: str) -> bool:
        """Delete a task together with its subtasks and comments."""
        with self._connect() as conn:
            owned = self._fetch_one(
                conn,
                "SELECT id FROM tasks WHERE id = ? AND user_id = ?",
                (int(task_id), user_id),
            )
            if owned is None:
                return False
            n_sub = conn.execute("DELETE FROM subtasks WHERE task_id = ?", (int(task_id),)).rowcount
            n_com = conn.execute("DELETE FROM comments WHERE task_id = ?", (int(task_id),)).rowcount
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
        logger.debug("Task deleted id=%s user=%s subtasks=%s comments=%s", task_id, user_id, n_sub, n_com)
        return True

    # ---- subtasks ----

    def add_subtask(self, task_id: int, user_id: str, *, title: str) -> Subtask | None:
        """Append a subtask (order = current max + 1). None if the task is not the user's."""
        if not title or not title.strip():
            raise ValueError("title is required")

        now = self._now_ms()
        with self._connect() as conn:
            owned = self._fetch_one(
                conn,
                "SELECT id FROM tasks WHERE id = ? AND user_id = ?",
                (int(task_id), user_id),
            )
            if owned is None:
                return None
            (next_order,) = conn.execute(
                'SELECT COALESCE(MAX("order"), -1) + 1 FROM subtasks WHERE task_id = ?',
                (int(task_id),),
            ).fetchone()
            cur = conn.execute(
                """
                INSERT INTO subtasks(task_id, title, is_completed, is_today, completed_at, "order", created_at, updated_at)
                VALUES (?, ?, 0, 0, NULL, ?, ?, ?)
                """,
                (int(task_id), title.strip(), int(next_order), now, now),
            )
            row = self._fetch_one(conn, "SELECT * FROM subtasks WHERE id = ?", (cur.lastrowid,))
        subtask = self._row_to_subtask(row)
        logger.debug("Subtask added id=%s task=%s order=%s", subtask.id, task_id, subtask.order)
        return subtask

    def get_subtask(self, subtask_id: int, user_id: str) -> Subtask | None:
        with self._connect() as conn:
            row = self._fetch_one(
                conn,
                f"SELECT * FROM subtasks WHERE id = ? AND task_id IN ({_OWNED_TASK_IDS})",
                (int(subtask_id), user_id),
            )
        return self._row_to_subtask(row) if row else None

    def list_subtasks(self, task_id: int, user_id: str) -> list[Subtask]:
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM subtasks
                WHERE task_id = ? AND task_id IN ({_OWNED_TASK_IDS})
                ORDER BY "order" ASC, id ASC
                """,
                (int(task_id), user_id),
            ).fetchall()
        return [self._row_to_subtask(r) for r in rows]

    def list_subtasks_for_user(self, user_id: str) -> list[Subtask]:
        """Every subtask of every task the user owns, grouped by task then order."""
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM subtasks
                WHERE task_id IN ({_OWNED_TASK_IDS})
                ORDER BY task_id ASC, "order" ASC, id ASC
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_subtask(r) for r in rows]

    def list_today_subtasks(self, user_id: str) -> list[TodaySubtask]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT s.*,
                       t.title AS task_title,
                       t.priority AS task_priority,
                       t.status AS task_status,
                       t.project_id AS task_project_id
                FROM subtasks s
                JOIN tasks t ON t.id = s.task_id
                WHERE t.user_id = ? AND s.is_today = 1
                ORDER BY s.created_at DESC, s.id DESC
                """,
                (user_id,),
            ).fetchall()
        return [
            TodaySubtask(
                subtask=self._row_to_subtask(r),
                task_title=str(r["task_title"]),
                task_priority=TaskPriority.from_db(r["task_priority"]),
                task_status=TaskStatus.from_db(r["task_status"]),
                project_id=int(r["task_project_id"]) if r["task_project_id"] is not None else None,
            )
            for r in rows
        ]

    def update_subtask(
        self,
        subtask_id: int,
        task_id: int,
        user_id: str,
        *,
        title: str | None = None,
        is_completed: bool | None = None,
        is_today: bool | None = None,
        completed_at: int | None | Any = _UNSET,
        order: int | None = None,
    ) -> Subtask | None:
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            fields.append("title = ?")
            params.append(title.strip())

        if is_completed is not None:
            fields.append("is_completed = ?")
            params.append(int(bool(is_completed)))

        if is_today is not None:
            fields.append("is_today = ?")
            params.append(int(bool(is_today)))

        if completed_at is not _UNSET:
            fields.append("completed_at = ?")
            params.append(completed_at)

        if order is not None:
            fields.append('"order" = ?')
            params.append(int(order))

        where = f"id = ? AND task_id = ? AND task_id IN ({_OWNED_TASK_IDS})"
        where_params = (int(subtask_id), int(task_id), user_id)

        with self._connect() as conn:
            if fields:
                if not self._update_row(conn, "subtasks", fields, params, where, where_params):
                    return None
            row = self._fetch_one(conn, f"SELECT * FROM subtasks WHERE {where}", where_params)
        if row is None:
            return None
        logger.debug("Subtask update id=%s task=%s fields=%s", subtask_id, task_id, fields)
        return self._row_to_subtask(row)

    def delete_subtask(self, subtask_id: int, task_id: int, user_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                f"DELETE FROM subtasks WHERE id = ? AND task_id = ? AND task_id IN ({_OWNED_TASK_IDS})",
                (int(subtask_id), int(task_id), user_id),
            )
            deleted = cur.rowcount == 1
        if deleted:
            logger.debug("Subtask deleted id=%s task=%s", subtask_id, task_id)
        return deleted

    # ---- comments ----

    def add_comment(self, task_id: int, user_id: str, *, content: str) -> Comment | None:
        """Comment on one of the user's tasks. None if the task is not the user's."""
        if not content or not content.strip():
            raise ValueError("content is required")

        now = self._now_ms()
        with self._connect() as conn:
            owned = self._fetch_one(
                conn,
                "SELECT id FROM tasks WHERE id = ? AND user_id = ?",
                (int(task_id), user_id),
            )
            if owned is None:
                return None
            cur = conn.execute(
                "INSERT INTO comments(task_id, user_id, content, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (int(task_id), user_id, content, now, now),
            )
            row = self._fetch_one(conn, "SELECT * FROM comments WHERE id = ?", (cur.lastrowid,))
        comment = self._row_to_comment(row)
        logger.debug("Comment added id=%s task=%s", comment.id, task_id)
        return comment

    def get_comment(self, comment_id: int, user_id: str) -> Comment | None:
        with self._connect() as conn:
            row = self._fetch_one(
                conn,
                f"SELECT * FROM comments WHERE id = ? AND user_id = ? AND task_id IN ({_OWNED_TASK_IDS})",
                (int(comment_id), user_id, user_id),
            )
        return self._row_to_comment(row) if row else None

    def list_comments(self, task_id: int, user_id: str) -> list[Comment]:
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM comments
                WHERE task_id = ? AND task_id IN ({_OWNED_TASK_IDS})
                ORDER BY created_at ASC, id ASC
                """,
                (int(task_id), user_id),
            ).fetchall()
        return [self._row_to_comment(r) for r in rows]

    def update_comment(self, comment_id: int, user_id: str, *, content: str) -> Comment | None:
        where = f"id = ? AND user_id = ? AND task_id IN ({_OWNED_TASK_IDS})"
        where_params = (int(comment_id), user_id, user_id)
        with self._connect() as conn:
            if not self._update_row(conn, "comments", ["content = ?"], [content], where, where_params):
                return None
            row = self._fetch_one(conn, "SELECT * FROM comments WHERE id = ?", (int(comment_id),))
        return self._row_to_comment(row)

    def delete_comment(self, comment_id: int, user_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                f"DELETE FROM comments WHERE id = ? AND user_id = ? AND task_id IN ({_OWNED_TASK_IDS})",
                (int(comment_id), user_id, user_id),
            )
            return cur.rowcount == 1
