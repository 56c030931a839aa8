"""Owned connection to the Firestore document store."""

from __future__ import annotations

import json
import os
import threading
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import firebase_admin
from firebase_admin import credentials, firestore
from flask import current_app

from .constants import USERS_COLLECTION
from .errors import ServiceUnavailableError

if TYPE_CHECKING:
    from flask import Flask
    from google.cloud.firestore_v1.client import Client

CONNECTED = "connected"
CONNECTING = "connecting"
DISCONNECTED = "disconnected"


def get_db() -> Client:
    """Return the Firestore client owned by the current app."""
    return current_app.extensions["database"].client


class DatabaseManager:
    """Holds the Firestore client and reports its connection status.

    In ``strict`` mode a store that cannot be reached at startup stops the
    process. In ``retry`` mode the app keeps serving (health checks report
    ``connecting``) while a daemon thread retries every
    ``DB_RETRY_INTERVAL`` seconds.
    """

    def __init__(self, client: Client | None = None) -> None:
        self._client = client
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.status = CONNECTED if client is not None else DISCONNECTED
        self.last_error: str | None = None
        self.app: Flask | None = None

    def init_app(self, app: Flask) -> None:
        """Register on the app and start connecting unless testing."""
        self.app = app
        app.extensions["database"] = self
        if app.config.get("TESTING") or self._client is not None:
            return

        if app.config.get("DB_CONNECT_MODE") == "strict":
            if not self.connect():
                app.logger.critical("Could not reach Firestore, shutting down.")
                raise SystemExit(1)
        else:
            self.start_background_connect()

    @property
    def client(self) -> Client:
        """Return the live client or fail with a 503."""
        if self._client is None or self.status != CONNECTED:
            raise ServiceUnavailableError()
        return self._client

    def attach(self, client: Any) -> None:
        """Use an already constructed client, e.g. an in-memory one."""
        with self._lock:
            self._client = client
            self.status = CONNECTED
            self.last_error = None

    def connect(self) -> bool:
        """Initialize Firebase, verify the store answers and record the status."""
        assert self.app is not None
        with self._lock:
            self.status = CONNECTING
        try:
            _initialize_firebase(self.app)
            client = firestore.client()
            list(client.collection(USERS_COLLECTION).limit(1).stream())
        except Exception as e:
            with self._lock:
                self.status = DISCONNECTED
                self.last_error = str(e)
            self.app.logger.error(f"Firestore connection error: {e}")
            return False

        self.attach(client)
        self.app.logger.info("Connected to Firestore")
        return True

    def start_background_connect(self) -> None:
        """Retry the connection in a daemon thread until it succeeds."""
        if self._thread is not None and self._thread.is_alive():
            return
        self.status = CONNECTING
        self._thread = threading.Thread(
            target=self._retry_loop, name="firestore-connect", daemon=True
        )
        self._thread.start()

    def _retry_loop(self) -> None:
        assert self.app is not None
        interval = float(self.app.config.get("DB_RETRY_INTERVAL", 5))
        while not self.connect():
            self.app.logger.warning(f"Retrying Firestore connection in {interval}s")
            with self._lock:
                self.status = CONNECTING
            time.sleep(interval)

    def health(self) -> dict[str, Any]:
        """Build the health-check payload."""
        environment = self.app.config.get("ENVIRONMENT") if self.app else None
        return {
            "status": "healthy" if self.status == CONNECTED else "degraded",
            "database": self.status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": environment or "development",
        }


def _initialize_firebase(app: Flask) -> None:
    """Initialize the Firebase Admin SDK from the first credentials found."""
    if firebase_admin._apps:
        return

    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path) as f:
                    project_id = json.load(f).get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        cred = credentials.ApplicationDefault()
        project_id = os.environ.get("FIREBASE_PROJECT_ID")

    options = {"projectId": project_id} if project_id else None
    try:
        firebase_admin.initialize_app(cred, options)
    except ValueError:
        # This can happen if the app is already initialized, which is fine.
        app.logger.info("Firebase app already initialized.")
