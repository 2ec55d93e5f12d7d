# =======================================================================================
# sedp/services/sync_service.py - Session data synchronization
# =======================================================================================
"""
Per-session cache of every domain collection.

A ``SyncSession`` loads the public tables plus the caller's registrations,
listens to the change feed and re-reads everything whenever a subscribed
table changes. All writes go through the session so that role checks,
validation and error reporting happen in one place; failures become a
``Notice`` and a ``False``/``None`` return, never an exception.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from ..models.enums import SUBSCRIBED_TABLES, TARGET_AUDIENCES, Status
from ..models.schemas import (
    Announcement,
    Category,
    Identity,
    Notice,
    Panchayath,
    PhotoGalleryItem,
    PushNotification,
    Registration,
    RegistrationCreate,
    RegistrationStats,
)
from ..store import ChangeEvent, DataStore
from ..utils.exceptions import (
    AuthenticationRequired,
    PermissionDenied,
    RecordNotFound,
    ReferenceCodeConflict,
    SEDPError,
    StoreFailure,
    ValidationError,
)
from ..utils.validators import RegistrationValidator, parse_input
from .auth_service import AuthService
from .content_service import DEFAULT_CATEGORIES, ContentService
from .dashboard_service import ALL, DashboardService
from .lifecycle import RegistrationLifecycle, check_transition

logger = logging.getLogger(__name__)

NoticeSink = Callable[[Notice], None]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

M = TypeVar("M", bound=BaseModel)


def _sort_key(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _records(model: Type[M], rows: Iterable[Dict[str, Any]]) -> Tuple[M, ...]:
    """Store rows as records; a row that does not fit its model is a store failure."""
    try:
        return tuple(model(**row) for row in rows)
    except PydanticValidationError as e:
        raise StoreFailure(f"stored {model.__name__} row is malformed", cause=e) from e


class SyncSession:
    """Cached collections and mutations for one client session."""

    def __init__(
        self,
        store: DataStore,
        auth: AuthService,
        identity: Optional[Identity] = None,
        notice_sink: Optional[NoticeSink] = None,
        lifecycle: Optional[RegistrationLifecycle] = None,
    ):
        self.store = store
        self.auth = auth
        self.lifecycle = lifecycle or RegistrationLifecycle()
        self.content = ContentService(store)
        self.dashboard = DashboardService()
        self.notice_sink = notice_sink

        self._lock = threading.RLock()
        self._identity = identity
        self._is_admin = False
        self._mounted = False
        self._closed = False
        self._generation = 0
        self._fetch_seq = 0
        self._published_seq = 0
        self._unsubscribers: List[Callable[[], None]] = []

        self.loading = False
        self.notices: List[Notice] = []
        self.last_error: Optional[SEDPError] = None

        self._registrations: Tuple[Registration, ...] = ()
        self._categories: Tuple[Category, ...] = ()
        self._panchayaths: Tuple[Panchayath, ...] = ()
        self._announcements: Tuple[Announcement, ...] = ()
        self._photo_gallery: Tuple[PhotoGalleryItem, ...] = ()
        self._notifications: Tuple[PushNotification, ...] = ()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def user(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_admin(self) -> bool:
        return self._is_admin

    @property
    def is_alive(self) -> bool:
        return not self._closed

    @property
    def registrations(self) -> Tuple[Registration, ...]:
        return self._registrations

    @property
    def categories(self) -> Tuple[Category, ...]:
        return self._categories

    @property
    def panchayaths(self) -> Tuple[Panchayath, ...]:
        return self._panchayaths

    @property
    def announcements(self) -> Tuple[Announcement, ...]:
        return self._announcements

    @property
    def photo_gallery(self) -> Tuple[PhotoGalleryItem, ...]:
        return self._photo_gallery

    @property
    def notifications(self) -> Tuple[PushNotification, ...]:
        return self._notifications

    # ------------------------------------------------------------------
    # Mount / teardown
    # ------------------------------------------------------------------
    def mount(self) -> "SyncSession":
        """Resolve the role, load everything and start listening for changes."""
        with self._lock:
            if self._closed:
                raise RuntimeError("session has been torn down")
            if self._mounted:
                return self
            self._mounted = True

        # listen before the first read so no change slips in between
        with self._lock:
            for table in SUBSCRIBED_TABLES:
                self._unsubscribers.append(self.store.subscribe(table, self._on_change))

        self._resolve_role()
        self.fetch_all()
        logger.debug("session mounted for %s", self._identity.user_id if self._identity else "anonymous")
        return self

    def teardown(self):
        """Stop listening; results of fetches still in flight are dropped."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._generation += 1
            unsubscribers, self._unsubscribers = self._unsubscribers, []

        for unsubscribe in unsubscribers:
            unsubscribe()
        logger.debug("session torn down")

    def __enter__(self) -> "SyncSession":
        return self.mount()

    def __exit__(self, exc_type, exc, tb):
        self.teardown()

    def set_identity(self, identity: Optional[Identity]) -> bool:
        """Sign-in, sign-out or role change while mounted; reloads scoped data."""
        with self._lock:
            self._identity = identity
            self._generation += 1
            # scoped collections belong to the previous identity
            self._registrations = ()
            self._notifications = ()
        self._resolve_role()
        return self.fetch_all()

    def _resolve_role(self):
        identity = self._identity
        try:
            is_admin = self.auth.is_admin(identity.user_id) if identity else False
        except StoreFailure as e:
            logger.error("Error checking admin role: %s", e.cause or e)
            is_admin = False
        with self._lock:
            if identity == self._identity:
                self._is_admin = is_admin
                if not is_admin:
                    self._notifications = ()

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------
    def _notify(self, title: str, description: str, variant: str = "default", code: Optional[str] = None):
        notice = Notice(title=title, description=description, variant=variant, code=code)
        self.notices.append(notice)
        if self.notice_sink is not None:
            self.notice_sink(notice)

    def _fail(self, error: SEDPError, failure_text: str):
        """Report ``error``; store failures get a generic description."""
        self.last_error = error
        if isinstance(error, StoreFailure):
            logger.error("%s: %s", error.message, error.cause or error)
            self._notify("Error", failure_text, "destructive", error.code)
        else:
            logger.info("%s rejected: %s", error.code, error.message)
            self._notify(error.title, error.message, "destructive", error.code)

    def drain_notices(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------
    def fetch_all(self) -> bool:
        """
        Reload every collection the caller may see.

        Nothing is published unless every read succeeds, the session is still
        alive, the identity has not changed meanwhile and no newer fetch has
        already published.
        """
        with self._lock:
            if self._closed:
                return False
            generation = self._generation
            self._fetch_seq += 1
            seq = self._fetch_seq
            identity, is_admin = self._identity, self._is_admin
            self.loading = True

        try:
            loaded = self._load(identity, is_admin)
        except StoreFailure as e:
            with self._lock:
                self.loading = False
            if generation == self._generation and not self._closed:
                self._fail(e, "Failed to load data. Please try again.")
            return False

        with self._lock:
            self.loading = False
            if self._closed or generation != self._generation or seq < self._published_seq:
                logger.debug("discarding stale fetch #%d", seq)
                return False
            self._published_seq = seq
            self._categories = loaded["categories"]
            self._panchayaths = loaded["panchayaths"]
            self._announcements = loaded["announcements"]
            self._photo_gallery = loaded["photo_gallery"]
            if identity is not None:
                self._registrations = loaded["registrations"]
                if is_admin:
                    self._notifications = loaded["notifications"]
        return True

    def _load(self, identity: Optional[Identity], is_admin: bool) -> Dict[str, tuple]:
        store = self.store
        loaded: Dict[str, tuple] = {
            "categories": _records(Category, store.select("categories", order_by="name")),
            "panchayaths": _records(Panchayath, store.select("panchayaths", order_by="malayalam_name")),
            "announcements": _records(
                Announcement,
                store.select("announcements", filters={"is_active": True}, order_by="created_at", descending=True),
            ),
            "photo_gallery": _records(
                PhotoGalleryItem, store.select("photo_gallery", order_by="uploaded_at", descending=True)
            ),
        }

        if identity is not None:
            # non-admins only ever see their own rows
            filters = None if is_admin else {"user_id": identity.user_id}
            loaded["registrations"] = _records(
                Registration,
                store.select("registrations", filters=filters, order_by="submitted_at", descending=True),
            )
            if is_admin:
                loaded["notifications"] = _records(
                    PushNotification,
                    [
                        r for r in store.select("push_notifications", order_by="created_at", descending=True)
                        if r["target_audience"] in TARGET_AUDIENCES
                    ],
                )

        return loaded

    def _on_change(self, event: ChangeEvent):
        if self._closed:
            return
        logger.debug("%s change on %s, refreshing", event.event_type.value, event.table)
        self.fetch_all()

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------
    def _require_user(self) -> Identity:
        if self._identity is None:
            raise AuthenticationRequired("Please sign in to submit a registration.")
        return self._identity

    def _require_admin(self) -> Identity:
        """Role is re-read from the store on every admin operation."""
        identity = self._identity
        if identity is None or not self.auth.is_admin(identity.user_id):
            raise PermissionDenied()
        return identity

    # ------------------------------------------------------------------
    # Registrations
    # ------------------------------------------------------------------
    def preview_reference_code(self, full_name: str, mobile_number: str) -> Optional[str]:
        try:
            return self.lifecycle.preview_code(full_name, mobile_number)
        except ValidationError:
            return None

    def _known_category(self, name: str) -> Optional[Category]:
        category = self.content.category_by_name(name)
        if category is not None:
            return category
        if self.store.select("categories", limit=1):
            raise ValidationError(f"Unknown category: {name}", details={"field": "category"})
        if name not in {c["name"] for c in DEFAULT_CATEGORIES}:
            raise ValidationError(f"Unknown category: {name}", details={"field": "category"})
        return None

    def create_registration(self, fields: Dict[str, Any]) -> Optional[Registration]:
        """Submit a new pending registration for the signed-in user."""
        try:
            identity = self._require_user()
            submission = parse_input(RegistrationCreate, RegistrationValidator.validate(fields))

            values = submission.model_dump()
            category = self._known_category(submission.category)
            if category is not None and not values.get("category_id"):
                values["category_id"] = category.id
            values.update(status=Status.PENDING.value, unique_id=None, approved_at=None, user_id=identity.user_id)

            row = self.store.insert("registrations", values)
        except SEDPError as e:
            self._fail(e, "Failed to submit registration. Please try again.")
            return None

        self._notify("Registration Submitted", "Your registration has been submitted successfully.")
        return Registration(**row)

    def _get_registration(self, registration_id: str) -> Registration:
        rows = self.store.select("registrations", filters={"id": registration_id}, limit=1)
        if not rows:
            raise RecordNotFound(f"Registration {registration_id} not found")
        return _records(Registration, rows)[0]

    def update_registration_status(self, registration_id: str, status: str, unique_code: Optional[str] = None) -> bool:
        """Approve or reject a pending registration (admin only)."""
        try:
            self._require_admin()
            current = self._get_registration(registration_id)
            values = self.lifecycle.decide(current, status, unique_code)

            code = values.get("unique_id")
            if code:
                holders = self.store.select("registrations", filters={"unique_id": code}, limit=1)
                if holders and holders[0]["id"] != registration_id:
                    raise ReferenceCodeConflict(
                        f"Reference code {code} already belongs to another registration",
                        details={"unique_id": code, "holder": holders[0]["id"]},
                    )

            try:
                # only a still-pending row may change, so racing admins cannot both decide
                changed = self.store.update(
                    "registrations", values, {"id": registration_id, "status": Status.PENDING.value}
                )
            except StoreFailure as e:
                if isinstance(e.cause, IntegrityError) and code:
                    raise ReferenceCodeConflict(
                        f"Reference code {code} already belongs to another registration",
                        details={"unique_id": code},
                    ) from e
                raise

            if not changed:
                latest = self._get_registration(registration_id)
                check_transition(latest.status, status)
                raise StoreFailure("registration update matched no rows")
        except SEDPError as e:
            self._fail(e, "Failed to update registration. Please try again.")
            return False

        self._notify("Registration Updated", f"Registration has been {values['status']}.")
        return True

    def delete_registration(self, registration_id: str) -> bool:
        """Permanently remove a registration (admin only)."""
        try:
            self._require_admin()
            if not self.store.delete("registrations", {"id": registration_id}):
                raise RecordNotFound(f"Registration {registration_id} not found")
        except SEDPError as e:
            self._fail(e, "Failed to delete registration. Please try again.")
            return False

        self._notify("Registration Deleted", "Registration has been deleted successfully.")
        return True

    def check_application_status(self, query: str) -> Optional[Registration]:
        """
        Public lookup by exact mobile number or reference code.

        When several rows match, a reference-code match wins, then the most
        recently submitted registration.
        """
        # None is also the "not found" answer, so clear any earlier error first
        self.last_error = None
        try:
            term = (query or "").strip()
            if not term:
                raise ValidationError("Enter a mobile number or reference code")

            code = term.upper()
            rows = self.store.select(
                "registrations", any_of=[{"mobile_number": term}, {"unique_id": code}]
            )
            if not rows:
                return None

            rows.sort(key=lambda r: (r.get("unique_id") == code, _sort_key(r.get("submitted_at"))), reverse=True)
            return _records(Registration, rows[:1])[0]
        except SEDPError as e:
            self._fail(e, "Failed to check application status. Please try again.")
            return None

    # ------------------------------------------------------------------
    # Admin content
    # ------------------------------------------------------------------
    def save_content(self, kind: str, fields: Dict[str, Any]):
        try:
            identity = self._require_admin()
            record = self.content.create(kind, fields, author_id=identity.user_id)
        except SEDPError as e:
            self._fail(e, f"Failed to save {kind}. Please try again.")
            return None

        self._notify("Saved", f"{kind.capitalize()} has been saved.")
        return record

    def update_content(self, kind: str, record_id: str, fields: Dict[str, Any]):
        try:
            self._require_admin()
            record = self.content.update(kind, record_id, fields)
        except SEDPError as e:
            self._fail(e, f"Failed to update {kind}. Please try again.")
            return None

        self._notify("Updated", f"{kind.capitalize()} has been updated.")
        return record

    def delete_content(self, kind: str, record_id: str) -> bool:
        try:
            self._require_admin()
            self.content.delete(kind, record_id)
        except SEDPError as e:
            self._fail(e, f"Failed to delete {kind}. Please try again.")
            return False

        self._notify("Deleted", f"{kind.capitalize()} has been deleted.")
        return True

    # ------------------------------------------------------------------
    # Dashboard views over the cache
    # ------------------------------------------------------------------
    def stats(self) -> RegistrationStats:
        return self.dashboard.get_summary(self._registrations)

    def filter_registrations(
        self, search: Optional[str] = None, category: Optional[str] = ALL, status: Optional[str] = ALL
    ) -> List[Registration]:
        return self.dashboard.filter_registrations(self._registrations, search, category, status)


class SyncService:
    """Factory for sessions sharing one store and role provider."""

    def __init__(self, store: DataStore, auth: Optional[AuthService] = None):
        self.store = store
        self.auth = auth or AuthService(store)

    def session(self, identity: Optional[Identity] = None, notice_sink: Optional[NoticeSink] = None) -> SyncSession:
        return SyncSession(self.store, self.auth, identity=identity, notice_sink=notice_sink)
