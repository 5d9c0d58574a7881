"""Tests for the project service."""

import threading
from unittest.mock import AsyncMock, patch

import pytest

from webcode.core import Project
from webcode.errors import DuplicateEntityError, EntityNotFoundError, ValidationError
from webcode.git import GitService
from webcode.projects import ProjectService, credentials_for

OWNER = "alice"


@pytest.fixture
def service(stores, tmp_path):
    return ProjectService(stores.projects, GitService(), tmp_path / "projects")


def test_create_assigns_id_and_local_path(service, tmp_path):
    project = service.create(OWNER, Project("", "  demo  ", "https://example.com/demo.git"))

    assert project.project_id
    assert project.name == "demo"
    assert project.status == "pending"
    assert project.local_path == str((tmp_path / "projects").resolve() / OWNER / project.project_id)
    assert service.get(OWNER, project.project_id).git_url == "https://example.com/demo.git"


@pytest.mark.parametrize(
    "name, url, auth",
    [("", "https://x/y.git", "none"), ("demo", "  ", "none"), ("demo", "https://x/y.git", "kerberos")],
)
def test_create_rejects_invalid(service, name, url, auth):
    with pytest.raises(ValidationError):
        service.create(OWNER, Project("", name, url, auth_type=auth))


def test_relative_local_path_lands_under_projects_root(service, tmp_path):
    project = service.create(OWNER, Project("", "demo", "u", local_path="team/demo"))

    assert project.local_path == str((tmp_path / "projects").resolve() / "team" / "demo")


@pytest.mark.parametrize("local_path", ["../../precious", "alice/../../precious", "/etc", "."])
def test_local_path_outside_projects_root_is_rejected(service, tmp_path, local_path):
    with pytest.raises(ValidationError):
        service.create(OWNER, Project("", "demo", "u", local_path=local_path))
    assert service.list_projects(OWNER) == []


def test_update_cannot_move_local_path_outside_root(service, tmp_path):
    project = service.create(OWNER, Project("", "demo", "u"))

    with pytest.raises(ValidationError):
        service.update(OWNER, project.project_id, Project("", "demo", "u", local_path=str(tmp_path / "precious")))
    assert service.get(OWNER, project.project_id).local_path == project.local_path


@pytest.mark.asyncio
async def test_clone_refuses_stored_path_outside_root(service, stores, tmp_path):
    precious = tmp_path / "precious"
    precious.mkdir()
    (precious / "thesis.txt").write_text("years of work", encoding="utf-8")
    stores.projects.upsert(OWNER, Project("p1", "demo", "https://example.com/demo.git", local_path=str(precious)))

    with patch.object(service.git, "clone_async", AsyncMock(return_value=(True, None))) as clone:
        with pytest.raises(ValidationError):
            await service.clone(OWNER, "p1")

    clone.assert_not_called()
    assert (precious / "thesis.txt").read_text(encoding="utf-8") == "years of work"


def test_duplicate_name_per_owner(service):
    service.create(OWNER, Project("", "demo", "u1"))

    with pytest.raises(DuplicateEntityError):
        service.create(OWNER, Project("", "demo", "u2"))
    service.create("bob", Project("", "demo", "u3"))


def test_get_missing_raises(service):
    with pytest.raises(EntityNotFoundError):
        service.get(OWNER, "nope")
    with pytest.raises(EntityNotFoundError):
        service.get("bob", service.create(OWNER, Project("", "demo", "u")).project_id)


def test_update_keeps_secrets_left_empty(service):
    created = service.create(
        OWNER, Project("", "demo", "u", auth_type="https", https_username="me", https_token="t0k3n")
    )

    updated = service.update(OWNER, created.project_id, Project("", "renamed", "u", auth_type="https"))

    assert updated.name == "renamed"
    assert updated.https_token == "t0k3n"
    assert updated.https_username == "me"
    assert service.get(OWNER, created.project_id).https_token == "t0k3n"


def test_update_to_taken_name_fails(service):
    service.create(OWNER, Project("", "one", "u1"))
    second = service.create(OWNER, Project("", "two", "u2"))

    with pytest.raises(DuplicateEntityError):
        service.update(OWNER, second.project_id, Project("", "one", "u2"))


def test_delete(service):
    project = service.create(OWNER, Project("", "demo", "u"))

    assert service.delete(OWNER, project.project_id) is True
    assert service.delete(OWNER, project.project_id) is False


def test_credentials_for():
    creds = credentials_for(Project("p", "n", "u", auth_type="ssh", ssh_private_key="KEY"))
    assert creds.auth_type == "ssh"
    assert creds.ssh_private_key == "KEY"


@pytest.mark.asyncio
async def test_clone_failure_records_error(service):
    project = service.create(OWNER, Project("", "demo", "https://example.invalid/demo.git"))

    with patch.object(service.git, "clone_async", AsyncMock(return_value=(False, "Git operation failed: nope"))):
        result, error = await service.clone(OWNER, project.project_id)

    assert error == "Git operation failed: nope"
    stored = service.get(OWNER, project.project_id)
    assert stored.status == "error"
    assert stored.error_message == error
    assert stored.last_sync_at is None


@pytest.mark.asyncio
async def test_clone_and_pull_keep_store_calls_off_the_event_loop(service):
    project = service.create(OWNER, Project("", "demo", "https://example.com/demo.git"))
    callers = []
    real_get, real_upsert = service.store.get, service.store.upsert

    def record_get(*args):
        callers.append(threading.current_thread())
        return real_get(*args)

    def record_upsert(*args):
        callers.append(threading.current_thread())
        return real_upsert(*args)

    with patch.object(service.store, "get", side_effect=record_get), patch.object(
        service.store, "upsert", side_effect=record_upsert
    ), patch.object(service.git, "clone_async", AsyncMock(return_value=(True, None))), patch.object(
        service.git, "pull_async", AsyncMock(return_value=(True, None))
    ), patch.object(
        service.git, "list_remote_branches_async", AsyncMock(return_value=(["main"], None))
    ):
        await service.clone(OWNER, project.project_id)
        await service.pull(OWNER, project.project_id)
        await service.branches(OWNER, project.project_id)

    assert len(callers) == 6
    assert threading.main_thread() not in callers


@pytest.mark.asyncio
async def test_clone_and_pull_local_repository(service, git_repo):
    repo, _ = git_repo
    project = service.create(OWNER, Project("", "demo", str(repo)))

    result, error = await service.clone(OWNER, project.project_id)

    assert error is None
    assert result.status == "ready"
    assert result.last_sync_at is not None
    assert service.current_branch(OWNER, project.project_id) == "main"

    result, error = await service.pull(OWNER, project.project_id)
    assert error is None
    assert service.get(OWNER, project.project_id).error_message is None


@pytest.mark.asyncio
async def test_branches(service, git_repo):
    repo, _ = git_repo
    project = service.create(OWNER, Project("", "demo", str(repo)))

    branches, error = await service.branches(OWNER, project.project_id)
    assert (branches, error) == (["main"], None)

    assert await service.branches_for_url(f"  {repo}  ") == (["main"], None)


@pytest.mark.asyncio
async def test_branches_for_blank_url(service):
    with pytest.raises(ValidationError):
        await service.branches_for_url("   ")
