import pytest

from facegate.models.models import FaceSample
from facegate.services.verification_system.face_verification.face_client import BiometricClient


class FakeTransport:
    """In-memory stand-in for the Baidu face API returning canned envelopes"""

    def __init__(self, search=None, match=None, add_user=None):
        self.replies = {"search": search, "match": match, "add_user": add_user}
        self.calls = []

    def search(self, image, image_type, group_id, options=None):
        self.calls.append(("search", image, image_type, group_id, options))
        return self.replies["search"]

    def match(self, images):
        self.calls.append(("match", images))
        return self.replies["match"]

    def add_user(self, image, image_type, group_id, user_id, options=None):
        self.calls.append(("add_user", image, image_type, group_id, user_id, options))
        return self.replies["add_user"]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    return BiometricClient(transport=transport)


@pytest.fixture
def sample():
    return FaceSample(image="aGVsbG8gZmFjZQ==")
