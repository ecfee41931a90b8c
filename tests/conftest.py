"""Shared fixtures: an in-memory stand-in for the SQL layer.

Managers reach the database only through the functions in each package's
db module, so the fixtures swap those functions for methods on MemoryStore.
The store keeps plain dicts shaped like the rows the SQL returns.
"""

import itertools
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

import admin.db
import feedback.db
import notifications.db
import swaps.db
import users.db
from admin import AdminManager
from auth import AuthManager, hash_password
from config import validate_settings, DEFAULTS
from feedback import FeedbackManager
from notifications import NotificationManager, PushHub
from swaps import SwapManager
from users import UserManager
from users.matching import skill_overlap

DB_MODULES = (users.db, swaps.db, feedback.db, notifications.db, admin.db)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _window(rows: List[Dict[str, Any]], offset: int, limit: int):
    return rows[offset:offset + limit], len(rows)


def _is_match_candidate(user, candidate, include_private=False):
    """Mirror of the WHERE clause in users.db.find_skill_matches."""
    if candidate['id'] == user['id'] or candidate['is_banned']:
        return False
    if not candidate['is_public'] and not include_private:
        return False
    overlap = skill_overlap(user, candidate)
    return bool(overlap['they_offer'] or overlap['they_want'])


def _match_sort_key(candidate):
    return (-candidate['rating'], -candidate['review_count'], candidate['joined_at'], str(candidate['id']))


class MemoryStore:
    """Rows for users, swaps, notifications and admin messages."""

    def __init__(self):
        self.users: Dict[UUID, Dict[str, Any]] = {}
        self.swaps: Dict[UUID, Dict[str, Any]] = {}
        self.notifications: Dict[UUID, Dict[str, Any]] = {}
        self.messages: Dict[UUID, Dict[str, Any]] = {}
        self.fail_notifications_for = set()
        self._clock = itertools.count(1)

    def now(self) -> datetime:
        return BASE_TIME + timedelta(seconds=next(self._clock))

    def install(self, monkeypatch):
        """Point every db module function at the matching store method."""
        for module in DB_MODULES:
            for name in dir(module):
                if name.startswith('_'):
                    continue
                if callable(getattr(module, name)) and hasattr(self, name):
                    monkeypatch.setattr(module, name, getattr(self, name))

    # users

    def _user(self, user_id) -> Optional[Dict[str, Any]]:
        user = self.users.get(user_id)
        if user is None:
            return None
        return {
            **user,
            'skills_offered': list(user['skills_offered']),
            'skills_wanted': list(user['skills_wanted']),
        }

    async def insert_user(
        self, conn, email, password_hash, name, location=None,
        skills_offered=None, skills_wanted=None, availability='flexible',
        is_public=True, is_admin=False
    ):
        now = self.now()
        user_id = uuid4()
        self.users[user_id] = {
            'id': user_id,
            'email': email.lower(),
            'password_hash': password_hash,
            'name': name,
            'location': location,
            'photo': None,
            'skills_offered': list(skills_offered or []),
            'skills_wanted': list(skills_wanted or []),
            'availability': availability,
            'is_public': is_public,
            'is_admin': is_admin,
            'is_banned': False,
            'rating': 0.0,
            'review_count': 0,
            'joined_at': now,
            'created_at': now,
            'updated_at': now,
        }
        return self._user(user_id)

    async def get_user(self, conn, user_id, for_update=False):
        return self._user(user_id)

    async def get_user_by_email(self, conn, email):
        for user in self.users.values():
            if user['email'] == email.lower():
                return self._user(user['id'])
        return None

    async def update_user(self, conn, user_id, fields):
        if user_id not in self.users:
            return None
        self.users[user_id].update(fields)
        self.users[user_id]['updated_at'] = self.now()
        return self._user(user_id)

    async def add_skill(self, conn, user_id, kind, name):
        if user_id not in self.users:
            return None
        skills = self.users[user_id][users.db.SKILL_COLUMNS[kind]]
        if name not in skills:
            skills.append(name)
        return self._user(user_id)

    async def remove_skill(self, conn, user_id, kind, name):
        if user_id not in self.users:
            return None
        column = users.db.SKILL_COLUMNS[kind]
        self.users[user_id][column] = [s for s in self.users[user_id][column] if s != name]
        return self._user(user_id)

    def _visible(self):
        return [self._user(u['id']) for u in self.users.values() if u['is_public'] and not u['is_banned']]

    async def search_users(self, conn, search=None, skill=None, availability=None, location=None, offset=0, limit=20):
        def contains(haystack, needle):
            return needle.lower() in (haystack or '').lower()

        rows = self._visible()
        if search:
            rows = [u for u in rows if contains(u['name'], search)
                    or any(contains(s, search) for s in u['skills_offered'] + u['skills_wanted'])]
        if skill:
            rows = [u for u in rows if any(contains(s, skill) for s in u['skills_offered'] + u['skills_wanted'])]
        if availability:
            rows = [u for u in rows if u['availability'] == availability]
        if location:
            rows = [u for u in rows if contains(u['location'], location)]
        rows.sort(key=lambda u: (-u['rating'], -u['review_count']))
        return _window(rows, offset, limit)

    async def search_by_skill(self, conn, skill, kind, offset=0, limit=20):
        column = users.db.SKILL_COLUMNS[kind]
        rows = [u for u in self._visible() if any(skill.lower() in s.lower() for s in u[column])]
        rows.sort(key=lambda u: (-u['rating'], -u['review_count']))
        return _window(rows, offset, limit)

    async def find_skill_matches(self, conn, user, include_private=False, offset=0, limit=20):
        rows = [
            self._user(candidate['id']) for candidate in self.users.values()
            if _is_match_candidate(user, candidate, include_private)
        ]
        rows.sort(key=_match_sort_key)
        return _window(rows, offset, limit)

    async def popular_skills(self, conn, limit=10):
        result = {}
        for kind, column in users.db.SKILL_COLUMNS.items():
            counts: Dict[str, int] = {}
            for user in self.users.values():
                if user['is_banned']:
                    continue
                for skill in user[column]:
                    counts[skill] = counts.get(skill, 0) + 1
            ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
            result[kind] = [{'skill': skill, 'count': count} for skill, count in ranked]
        return result

    async def admin_list_users(self, conn, search=None, status=None, role=None, offset=0, limit=20):
        rows = [self._user(u) for u in self.users]
        if search:
            rows = [u for u in rows if search.lower() in u['name'].lower() or search.lower() in u['email']]
        if status == 'active':
            rows = [u for u in rows if not u['is_banned']]
        elif status == 'banned':
            rows = [u for u in rows if u['is_banned']]
        if role == 'admin':
            rows = [u for u in rows if u['is_admin']]
        elif role == 'user':
            rows = [u for u in rows if not u['is_admin']]
        rows.sort(key=lambda u: u['created_at'], reverse=True)
        return _window(rows, offset, limit)

    async def user_counts(self, conn):
        rows = list(self.users.values())
        return {
            'total': len(rows),
            'active': sum(1 for u in rows if not u['is_banned']),
            'banned': sum(1 for u in rows if u['is_banned']),
            'admins': sum(1 for u in rows if u['is_admin']),
        }

    async def recent_users(self, conn, limit=5):
        rows = sorted(self.users.values(), key=lambda u: u['created_at'], reverse=True)
        return [self._user(u['id']) for u in rows[:limit]]

    async def active_user_ids(self, conn):
        rows = sorted(self.users.values(), key=lambda u: u['created_at'])
        return [u['id'] for u in rows if not u['is_banned']]

    # swaps

    def _swap(self, swap_id) -> Optional[Dict[str, Any]]:
        swap = self.swaps.get(swap_id)
        if swap is None:
            return None
        row = dict(swap)
        for prefix, key in (('fu', 'from_user_id'), ('tu', 'to_user_id')):
            user = self.users[swap[key]]
            row[f'{prefix}_name'] = user['name']
            row[f'{prefix}_photo'] = user['photo']
            row[f'{prefix}_rating'] = user['rating']
            row[f'{prefix}_review_count'] = user['review_count']
        return swaps.db.swap_record(row)

    async def get_swap(self, conn, swap_id, for_update=False):
        return self._swap(swap_id)

    async def find_pending_between(self, conn, user_a, user_b):
        for swap in self.swaps.values():
            if swap['status'] == 'pending' and {swap['from_user_id'], swap['to_user_id']} == {user_a, user_b}:
                return swap['id']
        return None

    async def insert_swap(self, conn, from_user_id, to_user_id, skill_offered, skill_wanted, message):
        now = self.now()
        swap_id = uuid4()
        row = {
            'id': swap_id,
            'from_user_id': from_user_id,
            'to_user_id': to_user_id,
            'skill_offered': skill_offered,
            'skill_wanted': skill_wanted,
            'message': message,
            'status': 'pending',
            'completed_at': None,
            'created_at': now,
            'updated_at': now,
        }
        for slot in swaps.db.FEEDBACK_SLOTS:
            row[f'{slot}_rating'] = None
            row[f'{slot}_comment'] = None
            row[f'{slot}_submitted_at'] = None
        self.swaps[swap_id] = row
        return self._swap(swap_id)

    async def update_status(self, conn, swap_id, status):
        now = self.now()
        swap = self.swaps[swap_id]
        swap['status'] = status
        swap['completed_at'] = now if status == 'completed' else None
        swap['updated_at'] = now
        return self._swap(swap_id)

    async def list_swaps(self, conn, user_id=None, status=None, direction=None, offset=0, limit=20):
        rows = list(self.swaps.values())
        if user_id is not None:
            if direction == 'sent':
                rows = [s for s in rows if s['from_user_id'] == user_id]
            elif direction == 'received':
                rows = [s for s in rows if s['to_user_id'] == user_id]
            else:
                rows = [s for s in rows if user_id in (s['from_user_id'], s['to_user_id'])]
        if status:
            rows = [s for s in rows if s['status'] == status]
        rows.sort(key=lambda s: s['created_at'], reverse=True)
        page, total = _window(rows, offset, limit)
        return [self._swap(s['id']) for s in page], total

    async def status_counts(self, conn, user_id=None):
        counts: Dict[str, int] = {}
        for swap in self.swaps.values():
            if user_id is not None and user_id not in (swap['from_user_id'], swap['to_user_id']):
                continue
            counts[swap['status']] = counts.get(swap['status'], 0) + 1
        return counts

    async def pending_received_count(self, conn, user_id):
        return sum(1 for s in self.swaps.values() if s['to_user_id'] == user_id and s['status'] == 'pending')

    # feedback

    async def set_feedback_slot(self, conn, swap_id, slot, rating, comment=None):
        swap = self.swaps.get(swap_id)
        if swap is None or swap['status'] != 'completed' or swap[f'{slot}_rating'] is not None:
            return False
        swap[f'{slot}_rating'] = rating
        swap[f'{slot}_comment'] = comment
        swap[f'{slot}_submitted_at'] = self.now()
        return True

    async def get_rating(self, conn, user_id, for_update=False):
        user = self.users.get(user_id)
        if user is None:
            return None
        return {'rating': user['rating'], 'review_count': user['review_count']}

    async def set_rating(self, conn, user_id, rating, review_count):
        self.users[user_id]['rating'] = rating
        self.users[user_id]['review_count'] = review_count

    def _completed_for(self, user_id):
        return [
            s for s in self.swaps.values()
            if s['status'] == 'completed' and user_id in (s['from_user_id'], s['to_user_id'])
        ]

    async def completed_swaps(self, conn, user_id, offset=0, limit=20):
        rows = sorted(self._completed_for(user_id), key=lambda s: s['completed_at'], reverse=True)
        page, total = _window(rows, offset, limit)
        return [self._swap(s['id']) for s in page], total

    async def feedback_summary(self, conn, user_id):
        rows = self._completed_for(user_id)
        return {
            'completed_swaps': len(rows),
            'swaps_with_feedback': sum(
                1 for s in rows if s['from_user_rating'] is not None or s['to_user_rating'] is not None
            ),
        }

    async def received_ratings(self, conn, user_id):
        received = []
        for swap in self.swaps.values():
            if swap['to_user_id'] == user_id and swap['from_user_rating'] is not None:
                received.append((swap['from_user_submitted_at'], swap['from_user_rating']))
            if swap['from_user_id'] == user_id and swap['to_user_rating'] is not None:
                received.append((swap['to_user_submitted_at'], swap['to_user_rating']))
        return [rating for _, rating in sorted(received, key=lambda item: item[0])]

    # notifications

    async def insert_notification(
        self, conn, user_id, type, title, message,
        related_type=None, related_id=None, metadata=None
    ):
        if user_id in self.fail_notifications_for:
            raise RuntimeError(f"insert failed for {user_id}")
        notification_id = uuid4()
        self.notifications[notification_id] = {
            'id': notification_id,
            'user_id': user_id,
            'type': type,
            'title': title,
            'message': message,
            'is_read': False,
            'related_type': related_type,
            'related_id': related_id,
            'metadata': metadata or {},
            'created_at': self.now(),
        }
        return notifications.db.notification_record(self.notifications[notification_id])

    def _inbox(self, user_id, unread_only=False):
        rows = [n for n in self.notifications.values() if n['user_id'] == user_id]
        if unread_only:
            rows = [n for n in rows if not n['is_read']]
        return sorted(rows, key=lambda n: n['created_at'], reverse=True)

    async def list_notifications(self, conn, user_id, unread_only=False, offset=0, limit=20):
        page, total = _window(self._inbox(user_id, unread_only), offset, limit)
        return [notifications.db.notification_record(n) for n in page], total

    async def unread_count(self, conn, user_id):
        return len(self._inbox(user_id, unread_only=True))

    async def set_read(self, conn, user_id, notification_id, is_read):
        row = self.notifications.get(notification_id)
        if row is None or row['user_id'] != user_id:
            return None
        row['is_read'] = is_read
        return notifications.db.notification_record(row)

    async def mark_all_read(self, conn, user_id):
        rows = self._inbox(user_id, unread_only=True)
        for row in rows:
            row['is_read'] = True
        return len(rows)

    async def delete_notification(self, conn, user_id, notification_id):
        row = self.notifications.get(notification_id)
        if row is None or row['user_id'] != user_id:
            return False
        del self.notifications[notification_id]
        return True

    # admin messages

    def _message(self, message_id):
        row = self.messages.get(message_id)
        return {**row, 'target_users': list(row['target_users'])} if row else None

    async def insert_message(self, conn, title, message, type, is_global, target_users, expires_at, created_by):
        now = self.now()
        message_id = uuid4()
        self.messages[message_id] = {
            'id': message_id,
            'title': title,
            'message': message,
            'type': type,
            'is_active': True,
            'is_global': is_global,
            'target_users': list(target_users),
            'expires_at': expires_at,
            'created_by': created_by,
            'created_at': now,
            'updated_at': now,
        }
        return self._message(message_id)

    async def get_message(self, conn, message_id):
        return self._message(message_id)

    async def list_messages(self, conn, type=None, is_active=None, offset=0, limit=20):
        rows = list(self.messages.values())
        if type:
            rows = [m for m in rows if m['type'] == type]
        if is_active is not None:
            rows = [m for m in rows if m['is_active'] == is_active]
        rows.sort(key=lambda m: m['created_at'], reverse=True)
        page, total = _window(rows, offset, limit)
        return [self._message(m['id']) for m in page], total

    async def update_message(self, conn, message_id, fields):
        if message_id not in self.messages:
            return None
        self.messages[message_id].update(fields)
        self.messages[message_id]['updated_at'] = self.now()
        return self._message(message_id)

    async def delete_message(self, conn, message_id):
        return self.messages.pop(message_id, None) is not None

    def _expired(self, row):
        return row['expires_at'] is not None and row['expires_at'] <= datetime.now(timezone.utc)

    async def deactivate_expired(self, conn):
        count = 0
        for row in self.messages.values():
            if row['is_active'] and self._expired(row):
                row['is_active'] = False
                count += 1
        return count

    async def active_messages_for(self, conn, user_id):
        rows = [
            m for m in self.messages.values()
            if m['is_active'] and not self._expired(m)
            and (m['is_global'] or user_id in m['target_users'])
        ]
        rows.sort(key=lambda m: m['created_at'], reverse=True)
        return [self._message(m['id']) for m in rows]


class FakeConnection:
    def __init__(self):
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield self

    async def fetchval(self, query, *args):
        return 1


class FakePool:
    def __init__(self):
        self.connection = FakeConnection()

    @asynccontextmanager
    async def acquire(self):
        yield self.connection


class FakeWebSocket:
    """Records frames sent to it. Set fail=True to make sends raise."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)


@pytest.fixture
def store(monkeypatch):
    memory = MemoryStore()
    memory.install(monkeypatch)
    return memory


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def settings(tmp_path):
    return validate_settings({
        **DEFAULTS,
        'jwt_secret': 'test-secret',
        'upload_dir': str(tmp_path / 'uploads'),
    })


@pytest.fixture
def hub():
    return PushHub()


@pytest.fixture
def notification_manager(store, pool, hub):
    return NotificationManager(pool, hub)


@pytest.fixture
def user_manager(store, pool):
    return UserManager(pool)


@pytest.fixture
def swap_manager(store, pool, notification_manager):
    return SwapManager(pool, notification_manager)


@pytest.fixture
def feedback_manager(store, pool, notification_manager):
    return FeedbackManager(pool, notification_manager)


@pytest.fixture
def admin_manager(store, pool, notification_manager):
    return AdminManager(pool, notification_manager)


@pytest.fixture
def auth_manager(store, pool, settings):
    return AuthManager(pool, settings['jwt_secret'])


@pytest.fixture
def make_user(store):
    """Insert a user directly and return its record."""
    async def _make_user(name: str, offered=(), wanted=(), **flags) -> Dict[str, Any]:
        user = await store.insert_user(
            None,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            password_hash=hash_password("password123"),
            name=name,
            skills_offered=list(offered),
            skills_wanted=list(wanted),
            is_public=flags.pop('is_public', True),
            is_admin=flags.pop('is_admin', False)
        )
        if flags:
            user = await store.update_user(None, user['id'], flags)
        return user
    return _make_user


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user("Alice", offered=["Python"], wanted=["Guitar"])


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user("Bob", offered=["Guitar"], wanted=["Python"])


@pytest.fixture
def fake_socket():
    """Factory for recording WebSocket stand-ins."""
    return FakeWebSocket
