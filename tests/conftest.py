from datetime import datetime, timezone

import pytest

from servicedesk.core import FrozenClock, Settings
from servicedesk.desk import create_service_desk
from servicedesk.models import Category, Incident, Item


START = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FrozenClock(START)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def desk(clock, settings):
    return create_service_desk(clock=clock, settings=settings)


@pytest.fixture
def lifecycle(desk):
    return desk.lifecycle


@pytest.fixture
def caller(desk):
    return desk.add_user("Carla Caller", email="carla@example.com")


@pytest.fixture
def bystander(desk):
    return desk.add_user("Ben Bystander")


@pytest.fixture
def resolver(desk):
    user = desk.add_user("Rita Resolver", roles={"resolver"})
    desk.join_group(desk.service_desk_group, user)
    return user


@pytest.fixture
def manager(desk):
    user = desk.add_user("Mark Manager", roles={"manager"})
    desk.join_group(desk.service_desk_group, user)
    return user


@pytest.fixture
def network_resolver(desk):
    return desk.add_user("Nina Network", roles={"resolver"})


@pytest.fixture
def network_group(desk, network_resolver):
    return desk.add_group("NETWORK-TEAM", resolvers=[network_resolver])


@pytest.fixture
def incident(lifecycle, caller):
    return lifecycle.create_ticket(
        Incident,
        caller,
        "Printer on floor two is jammed",
        category=Category.COMPUTER,
        item=Item.ISSUE,
    )
