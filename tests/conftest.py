"""Pytest configuration and shared fixtures."""
import pytest

from x12engine.config.settings import X12Settings
from x12engine.models.envelope import ReceiverIdentity, SenderIdentity
from x12engine.services.x12.generator import X12Generator
from x12engine.services.x12.mapper import X12Mapper
from x12engine.services.x12.parser import X12Parser
from x12engine.services.x12.service import X12Service
from x12engine.services.x12.validator import X12Validator
from tests.factories import (
    SAMPLE_810,
    SAMPLE_850,
    SAMPLE_855,
    SAMPLE_856,
    SAMPLE_997,
)


@pytest.fixture
def sample_850():
    """Sample 850 Purchase Order."""
    return SAMPLE_850


@pytest.fixture
def sample_855():
    """Sample 855 Purchase Order Acknowledgment."""
    return SAMPLE_855


@pytest.fixture
def sample_856():
    """Sample 856 Ship Notice with S/O/P/I levels."""
    return SAMPLE_856


@pytest.fixture
def sample_810():
    """Sample 810 Invoice."""
    return SAMPLE_810


@pytest.fixture
def sample_997():
    """Sample 997 Functional Acknowledgment."""
    return SAMPLE_997


@pytest.fixture
def settings():
    """Default engine settings."""
    return X12Settings()


@pytest.fixture
def parser(settings):
    """X12 parser instance."""
    return X12Parser(settings)


@pytest.fixture
def generator(settings):
    """X12 generator instance."""
    return X12Generator(settings)


@pytest.fixture
def validator(settings):
    """X12 validator with the default rule tables."""
    return X12Validator(settings=settings)


@pytest.fixture
def mapper():
    """Canonical mapper instance."""
    return X12Mapper()


@pytest.fixture
def service(settings):
    """Service facade instance."""
    return X12Service(settings)


@pytest.fixture
def sender():
    return SenderIdentity(sender_id="RECEIVER")


@pytest.fixture
def receiver():
    return ReceiverIdentity(receiver_id="SENDER")


@pytest.fixture
def parse_set(parser):
    """Parse a document and return its first transaction set."""
    def _parse_set(text):
        result = parser.parse(text)
        assert result.interchange is not None, result.errors
        return result.interchange.functional_groups[0].transaction_sets[0]
    return _parse_set
