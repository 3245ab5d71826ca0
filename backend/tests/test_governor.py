from conftest import slot_at
from farmstand.core.dates import local_today
from farmstand.core.errors import REASON_AUTO_PAUSE, REASON_PANIC_MODE
from farmstand.models import GlobalSettings
from farmstand.services.governor import GovernorSettings, check_admission, load_governor_settings


def test_defaults_without_settings_row(db):
    assert load_governor_settings(db) == GovernorSettings(panic_mode=False, auto_pause_threshold=80)


def test_settings_read_fresh_from_row(db):
    db.add(GlobalSettings(id=1, panic_mode=True, auto_pause_threshold=50))
    db.commit()
    assert load_governor_settings(db) == GovernorSettings(panic_mode=True, auto_pause_threshold=50)


def test_panic_mode_denies(db):
    admission = check_admission(db, local_today(), GovernorSettings(panic_mode=True, auto_pause_threshold=0))
    assert not admission.allowed
    assert admission.reason == REASON_PANIC_MODE


def test_auto_pause_at_threshold(db, make_slot):
    today = local_today()
    make_slot(start_ts=slot_at(today, 9), capacity=5, reserved=4, day=today)
    make_slot(start_ts=slot_at(today, 10), capacity=5, reserved=4, day=today)
    admission = check_admission(db, today, GovernorSettings(auto_pause_threshold=80))
    assert not admission.allowed
    assert admission.reason == REASON_AUTO_PAUSE


def test_below_threshold_allows(db, make_slot):
    today = local_today()
    make_slot(start_ts=slot_at(today, 9), capacity=10, reserved=7, day=today)
    assert check_admission(db, today, GovernorSettings(auto_pause_threshold=80)).allowed


def test_zero_threshold_disables_auto_pause(db, make_slot):
    today = local_today()
    make_slot(start_ts=slot_at(today, 9), capacity=10, reserved=10, day=today)
    assert check_admission(db, today, GovernorSettings(auto_pause_threshold=0)).allowed


def test_day_without_slots_is_admitted(db):
    assert check_admission(db, local_today(), GovernorSettings(auto_pause_threshold=80)).allowed
