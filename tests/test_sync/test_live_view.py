"""Tests for LiveJobView: per-session subscription and refresh."""

import pytest

from job_tracker.errors import TransientIOError
from job_tracker.sync.live_view import LiveJobView


@pytest.fixture
def declarant_view(lifecycle, feed, declarant_user):
    view = LiveJobView(lifecycle, feed, declarant_user.id)
    yield view
    view.close()


class TestOpenClose:
    def test_open_loads_listing(self, declarant_view, pending_job):
        declarant_view.open()
        assert declarant_view.is_open
        assert [j.job_ref for j in declarant_view.listing.available_jobs] == [
            "JR-100"
        ]
        assert declarant_view.refresh_count == 1

    def test_open_twice_subscribes_once(self, declarant_view, feed):
        declarant_view.open()
        declarant_view.open()
        assert feed.subscriber_count("jobs") == 1

    def test_close_unsubscribes(self, declarant_view, feed):
        declarant_view.open()
        declarant_view.close()
        declarant_view.close()
        assert not declarant_view.is_open
        assert feed.subscriber_count("jobs") == 0

    def test_context_manager(self, lifecycle, feed, declarant_user):
        with LiveJobView(lifecycle, feed, declarant_user.id) as view:
            assert feed.subscriber_count("jobs") == 1
        assert not view.is_open
        assert feed.subscriber_count("jobs") == 0

    def test_refresh_when_closed_is_noop(self, declarant_view):
        assert declarant_view.refresh() is False
        assert declarant_view.refresh_count == 0


class TestRefreshOnChange:
    def test_new_job_appears(self, declarant_view, lifecycle, allocater_user):
        declarant_view.open()
        lifecycle.create(allocater_user.id, "JR-300", "Acme")
        refs = [j.job_ref for j in declarant_view.listing.available_jobs]
        assert refs == ["JR-300"]

    def test_claim_by_other_removes_job(self, declarant_view, lifecycle,
                                        pending_job, other_declarant):
        declarant_view.open()
        lifecycle.claim(other_declarant.id, pending_job.id)
        assert declarant_view.listing.available_jobs == []
        assert declarant_view.listing.my_jobs == []

    def test_allocation_moves_to_my_jobs(self, declarant_view, lifecycle,
                                         pending_job, allocater_user,
                                         declarant_user):
        declarant_view.open()
        lifecycle.allocate(allocater_user.id, pending_job.id,
                           declarant_user.id)
        assert [j.job_ref for j in declarant_view.listing.my_jobs] == [
            "JR-100"
        ]

    def test_listener_called(self, declarant_view, lifecycle,
                             allocater_user):
        seen = []
        declarant_view.open()
        declarant_view.add_listener(lambda v: seen.append(v.refresh_count))
        lifecycle.create(allocater_user.id, "JR-301", "Acme")
        assert seen == [2]

    def test_no_refresh_after_close(self, declarant_view, lifecycle,
                                    allocater_user):
        seen = []
        declarant_view.open()
        declarant_view.add_listener(seen.append)
        declarant_view.close()
        lifecycle.create(allocater_user.id, "JR-302", "Acme")
        assert seen == []
        assert declarant_view.refresh_count == 1


class TestReport:
    def test_manager_gets_report(self, lifecycle, feed, manager_user,
                                 pending_job, declarant_user):
        with LiveJobView(lifecycle, feed, manager_user.id) as view:
            assert view.report.total == 1
            lifecycle.claim(declarant_user.id, pending_job.id)
            lifecycle.update_status(declarant_user.id, pending_job.id,
                                    "complete")
            assert view.report.counts["complete"] == 1
            assert view.report.completion_rate == 1.0
            assert view.listing.all_jobs[0].status == "complete"

    def test_declarant_gets_no_report(self, declarant_view):
        declarant_view.open()
        assert declarant_view.report is None


class TestTransientErrors:
    def test_keeps_previous_state(self, declarant_view, lifecycle,
                                  pending_job, monkeypatch):
        declarant_view.open()
        before = declarant_view.listing
        list_for = lifecycle.list_for

        def unavailable(user_id):
            raise TransientIOError()

        monkeypatch.setattr(lifecycle, "list_for", unavailable)
        assert declarant_view.refresh() is False
        assert declarant_view.listing is before
        assert isinstance(declarant_view.last_error, TransientIOError)

        monkeypatch.setattr(lifecycle, "list_for", list_for)
        assert declarant_view.refresh() is True
        assert declarant_view.last_error is None
