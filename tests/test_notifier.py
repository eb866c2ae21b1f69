from membership_portal.services.notifier import SAVED_LOCALLY, WORKING_OFFLINE, StatusIndicator
from membership_portal.services.scheduler import ManualScheduler


def test_info_notice_dismisses_after_three_seconds():
    scheduler = ManualScheduler(start=0.0)
    indicator = StatusIndicator(scheduler)

    indicator.info(SAVED_LOCALLY)
    scheduler.advance(2.9)
    assert indicator.current.message == SAVED_LOCALLY
    scheduler.advance(0.2)
    assert indicator.current is None


def test_error_notice_stays_longer():
    scheduler = ManualScheduler(start=0.0)
    indicator = StatusIndicator(scheduler)

    notice = indicator.error(WORKING_OFFLINE)
    scheduler.advance(4)

    assert indicator.current is notice
    assert notice.level == "error"
    scheduler.advance(1)
    assert indicator.current is None


def test_newer_notice_replaces_current():
    scheduler = ManualScheduler(start=0.0)
    indicator = StatusIndicator(scheduler)

    indicator.info("first")
    scheduler.advance(2)
    indicator.info("second")
    scheduler.advance(2)

    # The first notice's timer must not dismiss the second
    assert indicator.current.message == "second"
    assert indicator.messages == ["first", "second"]
