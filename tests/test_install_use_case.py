"""
Tests for the install use case — plan_install / run_install.
"""

import json

import pytest

from bottler.core.context import InstallContext
from bottler.core.errors import DependencyCycleError, MissingPackageError
from bottler.core.models.formula import Repository
from bottler.core.observability.progress import NullSink, TotalEvent
from bottler.core.persistence.snapshot import save_snapshot
from bottler.core.services.bottle_install import PlatformInfo
from bottler.core.use_cases.install import InstallPlan, plan_install, run_install

from conftest import PLATFORM, build_tarball, make_record


@pytest.fixture
def ctx(settings, sink) -> InstallContext:
    return InstallContext(settings=settings, platform=PlatformInfo(PLATFORM), sink=sink)


@pytest.fixture
def served_repo(settings, bottle_server) -> Repository:
    records = []
    for name, deps in (("pcre2", []), ("git", ["pcre2"])):
        body = build_tarball({f"{name}/2.0/bin/{name}": name.encode()})
        record = make_record(name, deps, body=body, version="2.0", revision=1)
        bottle_server.add(record.bottles[PLATFORM].url, body)
        records.append(record)
    repo = Repository.from_records(records)
    save_snapshot(repo, settings.snapshot_path)
    return repo


class TestPlanInstall:
    def test_plan(self, ctx, served_repo):
        plan = plan_install(["git"], ctx)
        assert plan.order == ["pcre2", "git"]
        assert plan.platform == PLATFORM
        assert plan.summary() == "will install 2 pkgs: pcre2 of 2.0_1, git of 2.0_1"

    def test_duplicate_request(self, ctx, served_repo):
        plan = plan_install(["git", "git"], ctx)
        assert plan.requested == ["git"]

    def test_to_dict(self, ctx, served_repo):
        d = plan_install(["git"], ctx).to_dict()
        json.dumps(d)
        assert d["order"][1] == {"name": "git", "version": "2.0_1", "deps": ["pcre2"]}

    def test_missing(self, ctx, served_repo, bottle_server):
        with pytest.raises(MissingPackageError):
            plan_install(["hg"], ctx)
        assert bottle_server.requests == []

    def test_strict_cycles(self, ctx, settings, make_repo):
        save_snapshot(make_repo({"a": ["b"], "b": ["a"]}), settings.snapshot_path)
        assert sorted(plan_install(["a"], ctx).order) == ["a", "b"]
        with pytest.raises(DependencyCycleError):
            plan_install(["a"], ctx, strict_cycles=True)


class TestRunInstall:
    def test_run(self, ctx, served_repo, bottle_server, sink, tmp_path, monkeypatch):
        monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
        plan = plan_install(["git"], ctx)

        report = run_install(plan, ctx, opener=bottle_server)

        assert report.ok
        assert set(report.staged) == {"pcre2", "git"}
        assert (report.staged["git"] / "git/2.0/bin/git").read_bytes() == b"git"
        assert [e.completed for e in sink.of_type(TotalEvent)] == [1, 2]

    def test_custom_runner(self, ctx, served_repo, tmp_path):
        plan = InstallPlan(requested=["git"], order=["pcre2", "git"], repo=served_repo, platform=PLATFORM)
        seen = []
        report = run_install(plan, ctx, runner=lambda r, cancel: seen.append(r.name) or tmp_path)
        assert report.ok
        assert sorted(seen) == ["git", "pcre2"]


class TestInstallContext:
    def test_create_uses_override(self, settings):
        ctx = InstallContext.create(settings)
        assert ctx.platform.identifier == PLATFORM
        assert isinstance(ctx.sink, NullSink)
