"""Base test case and fixtures shared by the route tests."""

import unittest
from datetime import timedelta

from mockfirestore import MockFirestore

from tests.conftest import patch_mockfirestore
from wefed import create_app
from wefed.auth.services import hash_password
from wefed.auth.tokens import generate_token
from wefed.campaign.models import new_campaign
from wefed.constants import (
    CAMPAIGNS_COLLECTION,
    GROUPS_COLLECTION,
    POSTS_COLLECTION,
    USERS_COLLECTION,
)
from wefed.group.models import new_group
from wefed.post.models import new_post
from wefed.user.models import new_user
from wefed.utils import utcnow

TEST_PASSWORD = "Password123"  # nosec
WEBHOOK_SECRET = "whsec_test"  # nosec
LONG_DESCRIPTION = "A community fund for solar panels in rural schools. " * 3

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret",
    "JWT_SECRET": "test-jwt-secret",
    "STRIPE_SECRET_KEY": "sk_test_123",
    "STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET,
    "STRIPE_PREMIUM_PRICE_ID": "price_premium",
    "FRONTEND_URL": "http://frontend.test",
    "MAIL_SUPPRESS_SEND": True,
}


class ApiTestCase(unittest.TestCase):
    """Runs the app against an in-memory Firestore."""

    def setUp(self):
        patch_mockfirestore()
        self.app = create_app(dict(TEST_CONFIG))
        self.db = MockFirestore()
        self.app.extensions["database"].attach(self.db)
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()

    def tearDown(self):
        self.app_context.pop()
        self.db.reset()

    def create_user(
        self,
        user_id="user1",
        name="Test User",
        email=None,
        password=TEST_PASSWORD,
        **fields,
    ):
        """Store a user document and return its id."""
        email = email or f"{user_id}@example.com"
        data = new_user(name, email, hash_password(password))
        data.update(fields)
        self.db.collection(USERS_COLLECTION).document(user_id).set(data)
        return user_id

    def auth_headers(self, user_id):
        return {"Authorization": f"Bearer {generate_token(user_id)}"}

    def get_doc(self, collection, doc_id):
        return self.db.collection(collection).document(doc_id).get().to_dict()

    def create_post(self, post_id, author_id, content="Hello world", **fields):
        data = new_post(author_id, content)
        data.update(fields)
        self.db.collection(POSTS_COLLECTION).document(post_id).set(data)
        return post_id

    def create_group(self, group_id, creator_id, **fields):
        data = new_group(
            creator_id, {"name": "Climate Circle", "description": "Talk climate"}
        )
        data.update(fields)
        self.db.collection(GROUPS_COLLECTION).document(group_id).set(data)
        return group_id

    def create_campaign(self, campaign_id, organizer_id, **fields):
        organizer = {"id": organizer_id, "name": "Organizer"}
        data = new_campaign(
            organizer,
            {
                "title": "Solar panels for schools",
                "description": LONG_DESCRIPTION,
                "goal": 100.0,
                "category": "Environment",
                "endDate": utcnow() + timedelta(days=10),
            },
            "usd",
        )
        data.update(fields)
        self.db.collection(CAMPAIGNS_COLLECTION).document(campaign_id).set(data)
        return campaign_id
