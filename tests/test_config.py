import logging

from servicedesk.core import SERVICE_DESK_GROUP_ID, Settings, configure_logging, get_settings
from servicedesk.desk import create_service_desk
from servicedesk.models import Category, Incident, Item


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.archive_after_days == 3
    assert settings.service_desk_group_id == SERVICE_DESK_GROUP_ID
    assert settings.service_desk_group_name == "SERVICE-DESK"
    assert settings.description_min_chars == 8
    assert settings.comment_max_chars == 255


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("SERVICEDESK_ARCHIVE_AFTER_DAYS", "7")
    monkeypatch.setenv("SERVICEDESK_SERVICE_DESK_GROUP_NAME", "HELPDESK")
    settings = Settings(_env_file=None)
    assert settings.archive_after_days == 7
    assert settings.service_desk_group_name == "HELPDESK"


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()


def test_desk_seeds_default_group(desk) -> None:
    assert desk.service_desk_group.name == "SERVICE-DESK"
    assert desk.service_desk_group.resolver_ids == set()


def test_archive_window_follows_settings(clock) -> None:
    desk = create_service_desk(clock=clock, settings=Settings(_env_file=None, archive_after_days=0))
    caller = desk.add_user("Carla Caller")
    rita = desk.add_user("Rita Resolver", roles={"resolver"})
    ticket = desk.lifecycle.create_ticket(Incident, caller, "Outlook crashes on start", Category.EMAIL, Item.ISSUE)

    resolved = desk.lifecycle.resolve(ticket, rita, "Reinstalled")
    assert desk.lifecycle.is_archived(resolved)


def test_configure_logging_installs_one_handler(settings) -> None:
    logger = logging.getLogger("servicedesk")
    before = list(logger.handlers)
    try:
        configure_logging(settings)
        configure_logging(settings)
        named = [h for h in logger.handlers if h.get_name() == "servicedesk"]
        assert len(named) == 1
        assert isinstance(named[0], logging.StreamHandler)
        assert logger.level == logging.INFO
    finally:
        for handler in logger.handlers[:]:
            if handler not in before:
                logger.removeHandler(handler)
