import os
import tempfile

# Must happen before thumbnail_studio is imported: stores read these lazily
# but the app mounts its preview directory at import time.
os.environ["THUMBNAIL_STORAGE_DIR"] = tempfile.mkdtemp(prefix="thumbnail-studio-tests-")
os.environ.pop("REPLICATE_API_TOKEN", None)

import pytest
from PIL import Image

from thumbnail_studio.services.data_uri import image_to_data_uri
from thumbnail_studio.services.errors import RemoteServiceError
from thumbnail_studio.services.replicate_http_client import set_replicate_client


def make_data_uri(width: int, height: int, color: str = "red") -> str:
    return image_to_data_uri(Image.new("RGB", (width, height), color=color))


class FakeReplicateClient:
    """Stands in for ReplicateHTTPClient.run; records every call."""

    def __init__(self, outputs=None, error: Exception | None = None):
        self.outputs = list(outputs or ["https://replicate.delivery/out-1.png"])
        self.error = error
        self.calls = []

    def run(self, input: dict, version: str | None = None, model: str | None = None) -> str:
        self.calls.append({"input": input, "version": version, "model": model})
        if self.error is not None:
            raise self.error
        if len(self.outputs) > 1:
            return self.outputs.pop(0)
        return self.outputs[0]


@pytest.fixture
def fake_replicate():
    client = FakeReplicateClient()
    set_replicate_client(client)
    yield client
    set_replicate_client(None)


@pytest.fixture
def failing_replicate():
    client = FakeReplicateClient(error=RemoteServiceError("Replicate error: NSFW content detected"))
    set_replicate_client(client)
    yield client
    set_replicate_client(None)
