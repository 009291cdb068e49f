#!/usr/bin/env python3
"""
Shared test fixtures and configuration.

Organized from small to large blocks: plain sample data, then the in-memory
test database, then components and the service wired onto it.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock

# Add project root to path for proper imports
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from bizcore.db.test_db import TestDatabase, TestDataFactory, SAMPLE_TEMPLATES
from bizcore.feedback.feedback_collector import FeedbackCollector
from bizcore.feedback.metrics_aggregator import MetricsAggregator
from bizcore.feedback.training_exporter import TrainingExporter
from bizcore.profiles.config_cache import InMemoryConfigCache
from bizcore.profiles.profile_resolver import ProfileResolver
from bizcore.service import BizCoreService
from bizcore.templates.merge_engine import MergeEngine
from bizcore.templates.template_store import TemplateStore


# ============================================================================
# Level 1: Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_templates():
    """Template content keyed by business type."""
    return SAMPLE_TEMPLATES


@pytest.fixture
def mock_redis_client():
    """Mock redis.Redis client for cache tests."""
    client = Mock()
    client.get.return_value = None
    client.set.return_value = True
    client.delete.return_value = 1
    return client


# ============================================================================
# Level 2: Test Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_db():
    """Test database with proper setup and teardown."""
    db = TestDatabase()
    db.setup()
    yield db
    db.teardown()


@pytest.fixture
def test_data_factory():
    """Test data factory for creating test data."""
    return TestDataFactory()


@pytest.fixture
def test_session(test_db):
    """Get a test database session."""
    with test_db.get_session() as session:
        yield session


# ============================================================================
# Level 3: Component Fixtures
# ============================================================================

@pytest.fixture
def template_store():
    return TemplateStore()


@pytest.fixture
def merge_engine(template_store):
    return MergeEngine(template_store)


@pytest.fixture
def config_cache():
    return InMemoryConfigCache(ttl_seconds=60)


@pytest.fixture
def profile_resolver(merge_engine, template_store, config_cache):
    return ProfileResolver(merge_engine, template_store, config_cache)


@pytest.fixture
def feedback_collector():
    return FeedbackCollector()


@pytest.fixture
def metrics_aggregator():
    return MetricsAggregator(high_confidence_threshold=0.8)


@pytest.fixture
def training_exporter():
    return TrainingExporter(min_quality=3, limit=1000)


# ============================================================================
# Level 4: Service Fixtures (one transaction per call, like production)
# ============================================================================

@pytest.fixture
def service(test_db, config_cache):
    """BizCoreService on the test database; retries never sleep."""
    return BizCoreService(
        session_factory=test_db.session_factory,
        cache=config_cache,
        max_retries=3,
        retry_base_delay=0.0,
        sleep=lambda seconds: None,
    )


@pytest.fixture
def seeded_service(service):
    """Service with the HVAC, Plumbing and Electrician sample templates."""
    for business_type, content in SAMPLE_TEMPLATES.items():
        service.upsert_template(business_type, content, create=True)
    return service


# ============================================================================
# Utility Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def project_root_path():
    """Return the project root path."""
    return project_root
