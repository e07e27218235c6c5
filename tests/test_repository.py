"""Tests for cloning and updating listing repositories with a local git remote."""

import json
import os
import shutil
import subprocess

import pytest

from listingwatch.config import LISTINGS_PATH
from listingwatch.sources.repository import (
    AcquisitionError,
    load_listings_document,
    local_path,
    update_repository,
)

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

GIT_IDENTITY = ["-c", "user.name=listingwatch", "-c", "user.email=listingwatch@example.com"]


def git(cwd, *args):
    subprocess.run(["git", *GIT_IDENTITY, *args], cwd=cwd, check=True, capture_output=True)


def commit_listings(repo_dir, listings, message):
    listings_file = os.path.join(repo_dir, LISTINGS_PATH)
    os.makedirs(os.path.dirname(listings_file), exist_ok=True)
    with open(listings_file, "w") as f:
        json.dump(listings, f)
    git(repo_dir, "add", "-A")
    git(repo_dir, "commit", "-m", message)


@pytest.fixture
def remote(tmp_path):
    repo_dir = tmp_path / "remote"
    repo_dir.mkdir()
    git(repo_dir, "init")
    commit_listings(repo_dir, [{"id": "1"}], "first listings")
    return repo_dir


def remote_url(repo_dir):
    return f"file://{repo_dir}"


@pytest.mark.asyncio
async def test_fresh_clone(remote, tmp_path):
    dest = local_path(str(tmp_path / "cache"), "Acme/Listings")

    await update_repository(remote_url(remote), dest)
    assert load_listings_document(dest) == [{"id": "1"}]


@pytest.mark.asyncio
async def test_pull_picks_up_new_commits(remote, tmp_path):
    dest = str(tmp_path / "clone")
    await update_repository(remote_url(remote), dest)

    commit_listings(remote, [{"id": "1"}, {"id": "2"}], "second listings")
    await update_repository(remote_url(remote), dest)
    assert load_listings_document(dest) == [{"id": "1"}, {"id": "2"}]


@pytest.mark.asyncio
async def test_broken_clone_is_recloned(remote, tmp_path):
    dest = tmp_path / "clone"
    dest.mkdir()
    (dest / "leftover.txt").write_text("not a git checkout")

    await update_repository(remote_url(remote), str(dest))
    assert load_listings_document(str(dest)) == [{"id": "1"}]
    assert not (dest / "leftover.txt").exists()


@pytest.mark.asyncio
async def test_unreachable_remote_raises(tmp_path):
    dest = str(tmp_path / "clone")

    with pytest.raises(AcquisitionError):
        await update_repository(remote_url(tmp_path / "missing"), dest)
    assert not os.path.isdir(os.path.join(dest, ".git"))


@pytest.mark.asyncio
async def test_broken_clone_with_unreachable_remote_raises(tmp_path):
    dest = tmp_path / "clone"
    dest.mkdir()

    with pytest.raises(AcquisitionError):
        await update_repository(remote_url(tmp_path / "missing"), str(dest))


def test_missing_listings_file(tmp_path):
    assert load_listings_document(str(tmp_path)) is None
