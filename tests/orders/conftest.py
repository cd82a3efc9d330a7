import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def orders_bed():
    from orders.domain import orders

    bed = DomainFixture(orders)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(orders_bed):
    with orders_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()
