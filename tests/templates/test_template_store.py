#!/usr/bin/env python3
"""
Template Store Tests

Versioned upserts, snapshots, soft deactivation and rollback against the
in-memory test database.
"""

import pytest

from bizcore.db.models.template_version_snapshot import TemplateVersionSnapshot
from bizcore.errors import InvalidInput, NotFound


def _content(protocol="Be polite.", rules=None, inquiries=None):
    return {
        "inquiryTypes": inquiries if inquiries is not None else [{"name": "Install", "keywords": ["install"]}],
        "protocolText": protocol,
        "specialRules": rules if rules is not None else ["R1"],
        "upsellPrompts": [],
    }


class TestUpsertTemplate:
    """Version monotonicity and idempotence of upsert_template."""

    def test_create_starts_at_version_one(self, test_session, template_store):
        """A new business type starts at version 1 without snapshots."""
        result = template_store.upsert_template(test_session, "HVAC", _content(), create=True)

        assert result.created is True
        assert result.changed is True
        assert result.template.version == 1
        assert result.template.is_active is True
        assert test_session.query(TemplateVersionSnapshot).count() == 0

    def test_unknown_business_type_requires_create_flag(self, test_session, template_store):
        """Upserting an unknown type without create is rejected."""
        with pytest.raises(InvalidInput):
            template_store.upsert_template(test_session, "HVAC", _content())

    def test_blank_business_type_rejected(self, test_session, template_store):
        with pytest.raises(InvalidInput):
            template_store.upsert_template(test_session, "   ", _content(), create=True)

    def test_unchanged_content_is_noop(self, test_session, template_store):
        """Same content twice keeps the version and writes no snapshot."""
        template_store.upsert_template(test_session, "HVAC", _content(), create=True)
        result = template_store.upsert_template(test_session, "HVAC", _content())

        assert result.changed is False
        assert result.template.version == 1
        assert test_session.query(TemplateVersionSnapshot).count() == 0

    def test_substantive_change_bumps_version_and_snapshots_prior_state(self, test_session, template_store):
        """A change bumps the version by exactly 1 and snapshots the prior version."""
        template_store.upsert_template(test_session, "HVAC", _content(rules=["R1"]), create=True)
        result = template_store.upsert_template(test_session, "HVAC", _content(rules=["R1", "R9"]))

        assert result.changed is True
        assert result.previous_version == 1
        assert result.template.version == 2
        assert result.template.content.special_rules == ["R1", "R9"]

        snapshots = test_session.query(TemplateVersionSnapshot).all()
        assert len(snapshots) == 1
        assert snapshots[0].version == 1
        assert snapshots[0].special_rules == ["R1"]

    def test_list_order_change_is_substantive(self, test_session, template_store):
        """Reordering rules is a change; order is part of the content."""
        template_store.upsert_template(test_session, "HVAC", _content(rules=["R1", "R2"]), create=True)
        result = template_store.upsert_template(test_session, "HVAC", _content(rules=["R2", "R1"]))

        assert result.changed is True
        assert result.template.version == 2

    def test_keywords_accept_comma_separated_string(self, test_session, template_store):
        """Legacy comma-separated keywords compare equal to the list form."""
        inquiries_list = [{"name": "LeakFix", "keywords": ["leak", "drip"]}]
        inquiries_str = [{"name": "LeakFix", "keywords": "leak, drip"}]
        template_store.upsert_template(test_session, "Plumbing", _content(inquiries=inquiries_list), create=True)
        result = template_store.upsert_template(test_session, "Plumbing", _content(inquiries=inquiries_str))

        assert result.changed is False
        assert result.template.content.inquiry_types[0].keywords == ["leak", "drip"]

    def test_unknown_field_rejected(self, test_session, template_store):
        """Typos in field names are caller errors, not silently dropped."""
        content = _content()
        content["protocols"] = "misspelled"
        with pytest.raises(InvalidInput):
            template_store.upsert_template(test_session, "HVAC", content, create=True)


class TestReadTemplates:
    """Active template lookup and listing."""

    def test_get_active_template(self, test_session, template_store, test_data_factory):
        test_data_factory.create_template(test_session, "HVAC")
        template = template_store.get_active_template(test_session, "HVAC")

        assert template.business_type == "HVAC"
        assert [inquiry.name for inquiry in template.content.inquiry_types] == ["Install", "Repair"]

    def test_get_active_template_unknown(self, test_session, template_store):
        with pytest.raises(NotFound) as exc_info:
            template_store.get_active_template(test_session, "Roofing")
        assert exc_info.value.missing == ["Roofing"]

    def test_list_active_business_types_sorted(self, test_session, template_store, test_data_factory):
        """Names come back sorted ascending regardless of creation order."""
        test_data_factory.create_templates(test_session, ["Plumbing", "Electrician", "HVAC"])
        assert template_store.list_active_business_types(test_session) == ["Electrician", "HVAC", "Plumbing"]

    def test_validate_business_types_reports_every_missing_name(self, test_session, template_store,
                                                                test_data_factory):
        test_data_factory.create_template(test_session, "HVAC")
        with pytest.raises(NotFound) as exc_info:
            template_store.validate_business_types(test_session, ["Roofing", "HVAC", "Pools"])
        assert exc_info.value.missing == ["Roofing", "Pools"]


class TestDeactivateTemplate:
    """Soft deletion and reactivation."""

    def test_deactivate_hides_template_without_version_bump(self, test_session, template_store,
                                                            test_data_factory):
        test_data_factory.create_template(test_session, "HVAC")
        deactivated = template_store.deactivate_template(test_session, "HVAC")

        assert deactivated.is_active is False
        assert deactivated.version == 1
        assert template_store.list_active_business_types(test_session) == []
        with pytest.raises(NotFound):
            template_store.get_active_template(test_session, "HVAC")
        assert test_session.query(TemplateVersionSnapshot).count() == 0

    def test_deactivate_is_idempotent(self, test_session, template_store, test_data_factory):
        test_data_factory.create_template(test_session, "HVAC")
        template_store.deactivate_template(test_session, "HVAC")
        again = template_store.deactivate_template(test_session, "HVAC")
        assert again.is_active is False

    def test_deactivate_unknown(self, test_session, template_store):
        with pytest.raises(NotFound):
            template_store.deactivate_template(test_session, "HVAC")

    def test_inactive_template_requires_create_to_update(self, test_session, template_store):
        template_store.upsert_template(test_session, "HVAC", _content(), create=True)
        template_store.deactivate_template(test_session, "HVAC")

        with pytest.raises(InvalidInput):
            template_store.upsert_template(test_session, "HVAC", _content(protocol="New"))

    def test_reactivation_alone_keeps_version(self, test_session, template_store):
        """Reactivating with unchanged content neither bumps nor snapshots."""
        template_store.upsert_template(test_session, "HVAC", _content(), create=True)
        template_store.deactivate_template(test_session, "HVAC")
        result = template_store.upsert_template(test_session, "HVAC", _content(), create=True)

        assert result.reactivated is True
        assert result.changed is False
        assert result.template.is_active is True
        assert result.template.version == 1
        assert test_session.query(TemplateVersionSnapshot).count() == 0

    def test_reactivation_with_changes_bumps_version(self, test_session, template_store):
        template_store.upsert_template(test_session, "HVAC", _content(), create=True)
        template_store.deactivate_template(test_session, "HVAC")
        result = template_store.upsert_template(test_session, "HVAC", _content(protocol="New"), create=True)

        assert result.reactivated is True
        assert result.template.version == 2
        assert test_session.query(TemplateVersionSnapshot).count() == 1


class TestVersionHistory:
    """Snapshots and forward-only rollback."""

    def test_history_is_version_descending(self, test_session, template_store):
        result = template_store.upsert_template(test_session, "HVAC", _content(protocol="v1"), create=True)
        template_store.upsert_template(test_session, "HVAC", _content(protocol="v2"))
        template_store.upsert_template(test_session, "HVAC", _content(protocol="v3"))

        history = template_store.get_version_history(test_session, result.template.id)
        assert [snapshot.version for snapshot in history] == [2, 1]
        assert [snapshot.content.protocol_text for snapshot in history] == ["v2", "v1"]

    def test_history_unknown_template(self, test_session, template_store):
        with pytest.raises(NotFound):
            template_store.get_version_history(test_session, 999)

    def test_rollback_reapplies_old_content_as_new_version(self, test_session, template_store):
        """Rollback moves history forward; nothing is rewritten."""
        result = template_store.upsert_template(test_session, "HVAC", _content(protocol="v1"), create=True)
        template_store.upsert_template(test_session, "HVAC", _content(protocol="v2"))

        rolled_back = template_store.rollback_template(test_session, "HVAC", 1)

        assert rolled_back.template.version == 3
        assert rolled_back.template.content.protocol_text == "v1"
        history = template_store.get_version_history(test_session, result.template.id)
        assert [snapshot.version for snapshot in history] == [2, 1]

    def test_rollback_to_missing_version(self, test_session, template_store):
        template_store.upsert_template(test_session, "HVAC", _content(), create=True)
        with pytest.raises(NotFound):
            template_store.rollback_template(test_session, "HVAC", 7)
