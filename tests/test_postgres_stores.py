"""
Postgres Store Tests

The psycopg2 connection is replaced by a MagicMock, so these tests cover
transaction handling and row mapping without a database.
"""

from unittest.mock import MagicMock

import psycopg2
import pytest

from deeprep.errors import StoreError
from deeprep.models import SessionStatus, SetStatus
from deeprep.stores.postgres import PostgresCachedPlanStore, PostgresConnection, PostgresSessionStore

from factories import NOW


SESSION_ROW = {
    'id': 7,
    'started_at': NOW,
    'status': 'paused',
    'completed_at': None,
    'duration_seconds': None,
    'paused_duration_seconds': None,
    'notes': None,
    'template_id': 3,
    'paused_at': None,
}


@pytest.fixture
def db():
    connection = PostgresConnection("postgresql://test/deeprep")
    connection._conn = MagicMock(closed=False)
    return connection


@pytest.fixture
def cursor(db):
    return db._conn.cursor.return_value


class TestTransaction:

    def test_commits_on_success(self, db, cursor):
        with db.transaction("testing") as c:
            c.execute("SELECT 1")

        db._conn.commit.assert_called_once()
        db._conn.rollback.assert_not_called()
        cursor.close.assert_called_once()

    def test_rolls_back_and_wraps_driver_errors(self, db, cursor):
        cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")

        with pytest.raises(StoreError, match="Error testing"):
            with db.transaction("testing") as c:
                c.execute("SELECT 1")

        db._conn.rollback.assert_called_once()
        db._conn.commit.assert_not_called()
        cursor.close.assert_called_once()

    def test_close(self, db):
        conn = db._conn
        db.close()
        conn.close.assert_called_once()


class TestPostgresSessionStore:

    def test_get_session_maps_row(self, db, cursor):
        cursor.fetchone.return_value = SESSION_ROW

        session = PostgresSessionStore(db).get_session(7)

        assert session.id == 7
        assert session.status == SessionStatus.PAUSED
        assert session.paused_duration_seconds == 0
        assert session.template_id == 3

    def test_missing_session(self, db, cursor):
        cursor.fetchone.return_value = None
        assert PostgresSessionStore(db).get_session(7) is None

    def test_create_notifies_listeners(self, db, cursor):
        cursor.fetchone.return_value = dict(SESSION_ROW, status='active')
        store = PostgresSessionStore(db)
        seen = []
        store.subscribe(seen.append)

        session = store.create_session(NOW)

        assert session.status == SessionStatus.ACTIVE
        assert [s.id for s in seen] == [7]

    def test_failed_update_does_not_notify(self, db, cursor):
        cursor.execute.side_effect = psycopg2.IntegrityError("duplicate key")
        store = PostgresSessionStore(db)
        seen = []
        store.subscribe(seen.append)

        with pytest.raises(StoreError):
            store.update_status(7, SessionStatus.ACTIVE)

        assert seen == []

    def test_paused_at_round_trips_through_update(self, db, cursor):
        cursor.fetchone.return_value = dict(SESSION_ROW, paused_at=NOW)
        store = PostgresSessionStore(db)

        session = store.get_session(7)
        store.update_session(session)

        assert session.paused_at == NOW
        params = cursor.execute.call_args[0][1]
        assert params['paused_at'] == NOW
        assert params['status'] == 'paused'

    def test_update_set_status(self, db, cursor):
        PostgresSessionStore(db).update_set_status(11, SetStatus.SKIPPED)

        sql, params = cursor.execute.call_args[0]
        assert "UPDATE workout_sets SET status" in sql
        assert params == ('skipped', 11)
        db._conn.commit.assert_called_once()


class TestPostgresCachedPlanStore:

    def test_get_by_hash_decodes_plan(self, db, cursor):
        cursor.fetchone.return_value = {'plan_json': {'exercises': [{
            'exercise_id': 1,
            'stable_id': 'chest_barbell_bench_press',
            'exercise_name': 'Barbell Bench Press',
            'sets': [{'set_type': 'working', 'weight': 100, 'reps': 5, 'rest_seconds': 120}],
            'rest_seconds': 120,
            'notes': None,
        }]}}

        plan = PostgresCachedPlanStore(db).get_by_hash("abc", 2)

        assert plan.exercises[0].sets[0].weight == 100.0

    def test_delete_older_than_returns_rowcount(self, db, cursor):
        cursor.rowcount = 4
        assert PostgresCachedPlanStore(db).delete_older_than(NOW) == 4
