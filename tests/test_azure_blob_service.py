"""
AzureBlobStorageService tests against the in-memory SDK fake.
"""

import re
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import pytest
from azure.core.exceptions import HttpResponseError, ServiceRequestError

from reviewmedia.adapters.storage.azure_blob_service import AzureBlobStorageService
from reviewmedia.core.config import AzureBlobSettings
from reviewmedia.core.exceptions import BackingStoreError, ConfigurationError, InvalidFileError

from .conftest import ACCOUNT_NAME, CONTAINER, FakeBlobServiceClient

MB = 1024 * 1024
UUID_NAME = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\.(?P<ext>.+)$")


def _sas_params(url: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def _sas_expiry(url: str) -> datetime:
    return datetime.strptime(_sas_params(url)["se"], "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


# ========== store_file ==========


@pytest.mark.asyncio
async def test_store_valid_image_returns_plain_blob_url(blob_service, blob_store, make_image):
    blob_url = await blob_service.store_file(make_image("photo.PNG", "image/png", 2 * MB))

    assert blob_url.startswith(f"https://{ACCOUNT_NAME}.blob.core.windows.net/{CONTAINER}/")
    assert "?" not in blob_url

    blob_name = blob_url.rsplit("/", 1)[1]
    match = UUID_NAME.match(blob_name)
    assert match and match.group("ext") == "PNG"

    data, content_type = blob_store.blobs[blob_name]
    assert len(data) == 2 * MB
    assert content_type == "image/png"
    assert await blob_service.file_exists(blob_url) is True


@pytest.mark.asyncio
async def test_each_upload_gets_a_fresh_name(blob_service, make_image):
    first = await blob_service.store_file(make_image("same.jpg", "image/jpeg"))
    second = await blob_service.store_file(make_image("same.jpg", "image/jpeg"))
    assert first != second


@pytest.mark.asyncio
async def test_file_at_size_limit_is_accepted(blob_service, make_image):
    blob_url = await blob_service.store_file(make_image("edge.webp", "image/webp", 5 * MB))
    assert blob_url.endswith(".webp")


@pytest.mark.parametrize(
    "filename, content_type, size, message",
    [
        ("photo.png", "image/png", 0, "File is empty"),
        ("big.jpg", "image/jpeg", 6 * MB, "must not exceed 5MB"),
        (None, "image/png", 10, "Invalid file name"),
        ("photo", "image/png", 10, "must have an extension"),
        ("doc.pdf", "application/pdf", 10, "File type not allowed"),
        ("photo.bmp", "image/bmp", 10, "File type not allowed"),
        ("photo.png", "application/octet-stream", 10, "Only images are accepted"),
        ("photo.png", None, 10, "Only images are accepted"),
    ],
)
@pytest.mark.asyncio
async def test_policy_violations_raise_and_upload_nothing(
    blob_service, blob_store, make_image, filename, content_type, size, message
):
    with pytest.raises(InvalidFileError, match=message):
        await blob_service.store_file(make_image(filename, content_type, size))

    assert blob_store.upload_calls == 0
    assert blob_store.blobs == {}


@pytest.mark.asyncio
async def test_validation_checks_emptiness_before_name(blob_service, make_image):
    with pytest.raises(InvalidFileError, match="File is empty"):
        await blob_service.store_file(make_image("no-extension", "text/plain", 0))


@pytest.mark.asyncio
async def test_validation_checks_size_before_extension(blob_service, make_image):
    with pytest.raises(InvalidFileError, match="must not exceed"):
        await blob_service.store_file(make_image("doc.pdf", "application/pdf", 6 * MB))


@pytest.mark.asyncio
async def test_upload_failure_is_raised_as_backing_store_error(blob_service, blob_store, make_image):
    blob_store.fail_with = ServiceRequestError("connection reset")

    with pytest.raises(BackingStoreError) as exc_info:
        await blob_service.store_file(make_image())

    assert isinstance(exc_info.value.__cause__, ServiceRequestError)
    assert exc_info.value.error_code == "EXTERNAL_SERVICE_ERROR"
    assert "blob_name" in exc_info.value.details


# ========== generate_sas_url ==========


@pytest.mark.asyncio
async def test_sas_url_defaults_to_configured_validity(blob_service, make_image):
    blob_url = await blob_service.store_file(make_image())
    issued_at = datetime.now(timezone.utc)

    sas_url = await blob_service.generate_sas_url(blob_url)

    assert sas_url.startswith(blob_url + "?")
    params = _sas_params(sas_url)
    assert params["sp"] == "r"
    assert params["sr"] == "b"
    assert "sig" in params
    expected = issued_at + timedelta(hours=24)
    assert abs((_sas_expiry(sas_url) - expected).total_seconds()) < 5


@pytest.mark.asyncio
async def test_sas_url_honours_explicit_validity(blob_service, make_image):
    blob_url = await blob_service.store_file(make_image())
    issued_at = datetime.now(timezone.utc)

    sas_url = await blob_service.generate_sas_url(blob_url, timedelta(minutes=30))

    expected = issued_at + timedelta(minutes=30)
    assert abs((_sas_expiry(sas_url) - expected).total_seconds()) < 5


@pytest.mark.asyncio
async def test_sas_expiry_has_one_second_resolution(blob_service, make_image, monkeypatch):
    blob_url = await blob_service.store_file(make_image())
    issued_at = datetime(2026, 1, 1, 12, 0, 0, 250000, tzinfo=timezone.utc)

    class FrozenClock(datetime):
        @classmethod
        def now(cls, tz=None):
            return issued_at

    monkeypatch.setattr("reviewmedia.adapters.storage.azure_blob_service.datetime", FrozenClock)

    first = await blob_service.generate_sas_url(blob_url)
    second = await blob_service.generate_sas_url(blob_url)
    longer = await blob_service.generate_sas_url(blob_url, timedelta(hours=25))

    # Grants issued within the same second with the same validity are identical
    assert first == second
    assert _sas_params(first)["se"] == "2026-01-02T12:00:00Z"
    assert longer != first
    assert _sas_params(longer)["se"] == "2026-01-02T13:00:00Z"


@pytest.mark.asyncio
async def test_sas_url_ignores_previous_token_on_input(blob_service, make_image):
    blob_url = await blob_service.store_file(make_image())
    first = await blob_service.generate_sas_url(blob_url, timedelta(hours=1))

    second = await blob_service.generate_sas_url(first, timedelta(hours=2))

    assert second.startswith(blob_url + "?")
    assert second.count("?") == 1
    assert _sas_params(first)["sig"] != _sas_params(second)["sig"]


@pytest.mark.asyncio
async def test_sas_url_for_missing_blob_is_none(blob_service):
    assert await blob_service.generate_sas_url(f"https://{ACCOUNT_NAME}.blob.core.windows.net/{CONTAINER}/nope.jpg") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("blob_url", ["", f"https://{ACCOUNT_NAME}.blob.core.windows.net/{CONTAINER}/"])
async def test_sas_url_for_unparseable_url_is_none(blob_service, blob_url):
    assert await blob_service.generate_sas_url(blob_url) is None


@pytest.mark.asyncio
async def test_sas_url_swallows_backing_store_errors(blob_service, blob_store, make_image):
    blob_url = await blob_service.store_file(make_image())
    blob_store.fail_with = HttpResponseError(message="server busy")

    assert await blob_service.generate_sas_url(blob_url) is None


@pytest.mark.asyncio
async def test_sas_url_never_reuses_connection_string_signature(blob_store, make_image):
    settings = AzureBlobSettings(
        account_name="",
        account_key="",
        connection_string=(
            f"DefaultEndpointsProtocol=https;AccountName={ACCOUNT_NAME};"
            "SharedAccessSignature=sv=2022-11-02&sp=rwdlac&se=2030-01-01T00:00:00Z&sig=abc"
        ),
        container_name=CONTAINER,
    )
    service = AzureBlobStorageService(settings=settings, client=FakeBlobServiceClient(blob_store))
    blob_url = await service.store_file(make_image())

    assert await service.generate_sas_url(blob_url, timedelta(minutes=5)) is None


@pytest.mark.asyncio
async def test_sas_url_signs_its_own_grant_when_connection_string_has_signature(blob_store, make_image):
    settings = AzureBlobSettings(
        account_name="",
        account_key="",
        connection_string=(
            f"DefaultEndpointsProtocol=https;AccountName={ACCOUNT_NAME};AccountKey=dGVzdC1hY2NvdW50LWtleQ==;"
            "SharedAccessSignature=sv=2022-11-02&sp=rwdlac&se=2030-01-01T00:00:00Z&sig=abc"
        ),
        container_name=CONTAINER,
    )
    service = AzureBlobStorageService(settings=settings, client=FakeBlobServiceClient(blob_store))
    blob_url = await service.store_file(make_image())
    issued_at = datetime.now(timezone.utc)

    sas_url = await service.generate_sas_url(blob_url, timedelta(minutes=5))

    params = _sas_params(sas_url)
    assert params["sp"] == "r"
    assert params["sig"] != "abc"
    assert abs((_sas_expiry(sas_url) - (issued_at + timedelta(minutes=5))).total_seconds()) < 5


@pytest.mark.asyncio
async def test_sas_url_reads_account_key_from_connection_string(blob_store, make_image):
    settings = AzureBlobSettings(
        account_name="",
        account_key="",
        connection_string=f"DefaultEndpointsProtocol=https;AccountName={ACCOUNT_NAME};AccountKey=dGVzdC1hY2NvdW50LWtleQ==;EndpointSuffix=core.windows.net",
        container_name=CONTAINER,
    )
    service = AzureBlobStorageService(settings=settings, client=FakeBlobServiceClient(blob_store))
    blob_url = await service.store_file(make_image())

    sas_url = await service.generate_sas_url(blob_url)

    assert sas_url is not None and "sig=" in sas_url


@pytest.mark.asyncio
async def test_sas_url_without_signing_credentials_is_none(blob_store, make_image):
    settings = AzureBlobSettings(account_name="", account_key="", connection_string="", container_name=CONTAINER)
    service = AzureBlobStorageService(settings=settings, client=FakeBlobServiceClient(blob_store))
    blob_url = await service.store_file(make_image())

    assert await service.generate_sas_url(blob_url) is None


# ========== delete_file / file_exists ==========


@pytest.mark.asyncio
async def test_delete_then_exists_is_false(blob_service, make_image):
    blob_url = await blob_service.store_file(make_image())

    assert await blob_service.delete_file(blob_url) is True
    assert await blob_service.file_exists(blob_url) is False


@pytest.mark.asyncio
async def test_delete_absent_blob_is_a_no_op(blob_service, blob_store):
    assert await blob_service.delete_file(f"https://{ACCOUNT_NAME}.blob.core.windows.net/{CONTAINER}/gone.png") is False
    assert blob_store.blobs == {}


@pytest.mark.asyncio
async def test_delete_accepts_sas_url(blob_service, make_image):
    blob_url = await blob_service.store_file(make_image())
    sas_url = await blob_service.generate_sas_url(blob_url)

    assert await blob_service.delete_file(sas_url) is True
    assert await blob_service.file_exists(blob_url) is False


@pytest.mark.asyncio
async def test_delete_swallows_backing_store_errors(blob_service, blob_store, make_image):
    blob_url = await blob_service.store_file(make_image())
    blob_store.fail_with = ServiceRequestError("timeout")

    assert await blob_service.delete_file(blob_url) is False


@pytest.mark.asyncio
async def test_delete_with_unparseable_url_is_false(blob_service):
    assert await blob_service.delete_file("") is False


@pytest.mark.asyncio
async def test_exists_treats_errors_as_absent(blob_service, blob_store, make_image):
    blob_url = await blob_service.store_file(make_image())
    blob_store.fail_with = HttpResponseError(message="forbidden")

    assert await blob_service.file_exists(blob_url) is False


@pytest.mark.asyncio
async def test_exists_with_unparseable_url_is_false(blob_service):
    assert await blob_service.file_exists(None) is False


# ========== container / client ==========


@pytest.mark.asyncio
async def test_ensure_container_exists_is_idempotent(blob_service, blob_store):
    assert await blob_service.ensure_container_exists() is True
    assert blob_store.container_created is True
    assert await blob_service.ensure_container_exists() is True


@pytest.mark.asyncio
async def test_ensure_container_exists_reports_failure(blob_service, blob_store):
    blob_store.fail_with = ServiceRequestError("dns failure")
    assert await blob_service.ensure_container_exists() is False


def test_client_requires_connection_string():
    service = AzureBlobStorageService(settings=AzureBlobSettings(connection_string=""))
    with pytest.raises(ConfigurationError):
        service.client
