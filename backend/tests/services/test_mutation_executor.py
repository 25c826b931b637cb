"""Tests for the fetch loader and mutation executor."""
import pytest

from services.exceptions import AuthError, NetworkError, NotFoundError, ValidationError
from services.fetch_loader import FetchLoader
from services.mutation_executor import MutationExecutor, validate_create
from tests.conftest import USER_ID, FakeRemoteStore


@pytest.fixture
def executor(remote: FakeRemoteStore) -> MutationExecutor:
    """Executor over the fake remote store."""
    return MutationExecutor(remote, "book_mark")


@pytest.fixture
def loader(remote: FakeRemoteStore) -> FetchLoader:
    """Loader over the fake remote store."""
    return FetchLoader(remote, "book_mark")


async def test__load__returns_subject_records_newest_first(
    remote: FakeRemoteStore, loader: FetchLoader,
) -> None:
    """Only the subject's rows are returned, ordered by created_at descending."""
    remote.add_row("Old", "https://old.example", minutes=1)
    remote.add_row("New", "https://new.example", minutes=5)
    remote.add_row("Theirs", "https://theirs.example", user_id="user-2")

    records = await loader.load(USER_ID)

    assert [r.title for r in records] == ["New", "Old"]
    assert remote.calls == [("query", {"user_id": USER_ID})]


async def test__load__malformed_rows_raise_network_error(
    remote: FakeRemoteStore, loader: FetchLoader,
) -> None:
    """Rows that don't parse as bookmarks are a remote failure."""
    remote.rows["1"] = {"id": "1", "user_id": USER_ID, "created_at": "2025-01-01T00:00:00+00:00"}

    with pytest.raises(NetworkError):
        await loader.load(USER_ID)


async def test__load__propagates_auth_error(remote: FakeRemoteStore, loader: FetchLoader) -> None:
    """Auth failures are not retried or wrapped."""
    remote.failures["query"] = AuthError()

    with pytest.raises(AuthError):
        await loader.load(USER_ID)
    assert remote.count("query") == 1


@pytest.mark.parametrize(
    ("title", "url", "field"),
    [
        ("", "https://example.com", "title"),
        ("   ", "https://example.com", "title"),
        (None, "https://example.com", "title"),
        ("Example", "", "url"),
        ("Example", None, "url"),
    ],
)
async def test__create__empty_fields_rejected_before_network(
    remote: FakeRemoteStore,
    executor: MutationExecutor,
    title: str | None,
    url: str | None,
    field: str,
) -> None:
    """Empty title or url raises ValidationError and makes no call."""
    with pytest.raises(ValidationError) as exc_info:
        await executor.create(title, url, USER_ID)

    assert exc_info.value.field == field
    assert remote.calls == []


async def test__create__returns_confirmed_record(
    remote: FakeRemoteStore, executor: MutationExecutor,
) -> None:
    """The confirmed record carries the remote id and the owner."""
    created = await executor.create("  Example ", "https://example.com", USER_ID)

    assert created.id == "1"
    assert created.title == "Example"
    assert created.owner_id == USER_ID
    assert remote.calls == [
        ("insert", {"title": "Example", "url": "https://example.com", "user_id": USER_ID}),
    ]


async def test__create__propagates_network_error(
    remote: FakeRemoteStore, executor: MutationExecutor,
) -> None:
    """Network failures surface to the caller unchanged."""
    remote.failures["insert"] = NetworkError("down")

    with pytest.raises(NetworkError):
        await executor.create("Example", "https://example.com", USER_ID)


async def test__delete__missing_id_raises_not_found(executor: MutationExecutor) -> None:
    """Deleting an id that doesn't exist raises NotFoundError."""
    with pytest.raises(NotFoundError) as exc_info:
        await executor.delete("42")

    assert exc_info.value.bookmark_id == "42"


async def test__delete__removes_remote_row(
    remote: FakeRemoteStore, executor: MutationExecutor,
) -> None:
    """A successful delete removes the row remotely."""
    remote.add_row("Example", "https://example.com")

    await executor.delete("1")

    assert remote.rows == {}


def test__validate_create__message_is_readable() -> None:
    """The ValidationError message doesn't leak pydantic prefixes."""
    with pytest.raises(ValidationError) as exc_info:
        validate_create("", "https://example.com")

    assert str(exc_info.value) == "Title cannot be empty"
