"""Tests for GPO classification and the audit run."""
import io
import unittest
from unittest.mock import MagicMock, patch

from gpoaudit.errors import ConfigurationError, ExportError, ObjectReportError, RetrievalError
from gpoaudit.services.capability_loader import LoadStatus
from gpoaudit.services.gpo_auditor import (
    GpoAuditor,
    PolicyAction,
    PolicyRecord,
    PolicyStatus,
    audit_policies,
    classify,
    filter_policies,
)
from gpoaudit.utils.gpo_report import LinkReport, PolicyLink, PolicyObject

DOMAIN = "contoso.com"


class FakeHost:
    def __init__(self):
        self.active = set()

    def is_active(self, name):
        return name in self.active

    def activate(self, name):
        self.active.add(name)


class FakeSource:
    """In-memory directory source. ``reports`` maps policy id -> LinkReport or exception."""

    required_capabilities = ("GroupPolicy",)

    def __init__(self, policies, reports, list_error=None):
        self.capability_host = FakeHost()
        self.policies = policies
        self.reports = reports
        self.list_error = list_error
        self.list_calls = 0
        self.report_calls = []

    def list_policy_objects(self, domain):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.policies)

    def get_link_report(self, policy_id, domain):
        self.report_calls.append(policy_id)
        result = self.reports[policy_id]
        if isinstance(result, Exception):
            raise result
        return result


def linked(*flags):
    return LinkReport(tuple(PolicyLink(f"contoso.com/OU{i}", flag) for i, flag in enumerate(flags)))


class TestClassify(unittest.TestCase):
    def test_unlinked(self):
        self.assertEqual(classify(LinkReport()), (PolicyStatus.UNUSED_UNLINKED, PolicyAction.DELETE))

    def test_linked_enabled(self):
        self.assertEqual(classify(linked(True)), (PolicyStatus.STILL_USED, PolicyAction.KEEP))

    def test_linked_disabled(self):
        self.assertEqual(classify(linked(False)), (PolicyStatus.DISABLED, PolicyAction.POTENTIALLY_DELETE))

    def test_first_link_decides_mixed_links(self):
        self.assertEqual(classify(linked(False, True))[0], PolicyStatus.DISABLED)
        self.assertEqual(classify(linked(True, False))[0], PolicyStatus.STILL_USED)


class TestFilterPolicies(unittest.TestCase):
    def test_case_insensitive_substring(self):
        policies = [PolicyObject("1", "Finance-HR"), PolicyObject("2", "Printers")]
        self.assertEqual([p.id for p in filter_policies(policies, "finance")], ["1"])
        self.assertEqual([p.id for p in filter_policies(policies, "NT-H")], ["1"])


class TestGpoAuditor(unittest.TestCase):
    def setUp(self):
        self.policies = [
            PolicyObject("a", "Finance-HR"),
            PolicyObject("b", "Old Printers"),
            PolicyObject("c", "Finance Drives"),
        ]
        self.reports = {
            "a": linked(True),
            "b": LinkReport(),
            "c": linked(False),
        }
        self.source = FakeSource(self.policies, self.reports)

    def test_include_all_classifies_every_policy(self):
        auditor = GpoAuditor(self.source)
        records = auditor.audit(DOMAIN, include_all=True)
        self.assertEqual([r.name for r in records], ["Finance-HR", "Old Printers", "Finance Drives"])
        self.assertEqual(
            [(r.status, r.action) for r in records],
            [
                (PolicyStatus.STILL_USED, PolicyAction.KEEP),
                (PolicyStatus.UNUSED_UNLINKED, PolicyAction.DELETE),
                (PolicyStatus.DISABLED, PolicyAction.POTENTIALLY_DELETE),
            ],
        )
        self.assertEqual(records[0].link_paths, ("contoso.com/OU0",))
        self.assertEqual(records[1].link_paths, ())
        self.assertTrue(all(r.domain == DOMAIN for r in records))

    def test_filter_is_case_insensitive(self):
        records = GpoAuditor(self.source).audit(DOMAIN, name_filter="finance")
        self.assertEqual([r.policy_id for r in records], ["a", "c"])
        self.assertEqual(self.source.report_calls, ["a", "c"])

    def test_missing_filter_fails_without_directory_access(self):
        with self.assertRaises(ConfigurationError):
            GpoAuditor(self.source).audit(DOMAIN, name_filter="", include_all=False)
        self.assertEqual(self.source.list_calls, 0)
        self.assertEqual(self.source.capability_host.active, set())

    def test_filter_and_all_together_rejected(self):
        with self.assertRaises(ConfigurationError):
            GpoAuditor(self.source).audit(DOMAIN, name_filter="x", include_all=True)

    def test_empty_domain_rejected(self):
        with self.assertRaises(ConfigurationError):
            GpoAuditor(self.source).audit("", include_all=True)

    def test_source_capabilities_loaded(self):
        GpoAuditor(self.source).audit(DOMAIN, include_all=True)
        self.assertIn("GroupPolicy", self.source.capability_host.active)

    def test_one_report_failure_skips_one_record(self):
        self.reports["b"] = ObjectReportError("b", "access denied")
        auditor = GpoAuditor(self.source)
        with self.assertLogs("gpoaudit.services.gpo_auditor", level="WARNING") as logs:
            records = auditor.audit(DOMAIN, include_all=True)
        self.assertEqual(len(records), 2)
        self.assertEqual([r.policy_id for r in records], ["a", "c"])
        self.assertEqual(len(auditor.warnings), 1)
        self.assertIn("Old Printers", auditor.warnings[0])
        self.assertTrue(any("access denied" in line for line in logs.output))

    def test_retrieval_error_returns_empty(self):
        source = FakeSource([], {}, list_error=RetrievalError("domain unreachable"))
        auditor = GpoAuditor(source)
        with self.assertLogs("gpoaudit.services.gpo_auditor", level="ERROR"):
            records = auditor.audit(DOMAIN, include_all=True)
        self.assertEqual(records, [])
        self.assertEqual(len(auditor.errors), 1)
        self.assertIsInstance(auditor.errors[0], RetrievalError)

    def test_no_matches_is_not_an_error(self):
        auditor = GpoAuditor(self.source)
        with self.assertLogs("gpoaudit.services.gpo_auditor", level="WARNING") as logs:
            records = auditor.audit(DOMAIN, name_filter="nomatch")
        self.assertEqual(records, [])
        self.assertEqual(auditor.errors, [])
        self.assertTrue(any("nomatch" in line for line in logs.output))

    def test_observer_sees_records_in_order(self):
        seen = []
        records = GpoAuditor(self.source, observers=[seen.append]).audit(DOMAIN, include_all=True)
        self.assertEqual(seen, records)

    def test_failing_observer_does_not_stop_batch(self):
        def broken(record):
            raise RuntimeError("console closed")

        seen = []
        auditor = GpoAuditor(self.source, observers=[broken, seen.append])
        with self.assertLogs("gpoaudit.services.gpo_auditor", level="WARNING"):
            records = auditor.audit(DOMAIN, include_all=True)
        self.assertEqual([r.policy_id for r in records], ["a", "b", "c"])
        self.assertEqual(seen, records)
        self.assertEqual(len(auditor.warnings), 3)
        self.assertIn("console closed", auditor.warnings[0])
        self.assertEqual(auditor.errors, [])

    def test_load_reporter_sees_source_capabilities(self):
        reporter = MagicMock()
        GpoAuditor(self.source, load_reporter=reporter).audit(DOMAIN, include_all=True)
        reporter.assert_called_once()
        outcome = reporter.call_args.args[0]
        self.assertEqual(outcome.name, "GroupPolicy")
        self.assertEqual(outcome.status, LoadStatus.LOADED)

    def test_observer_called_before_next_report_fetch(self):
        order = []
        original = self.source.get_link_report

        def tracking_report(policy_id, domain):
            order.append(("fetch", policy_id))
            return original(policy_id, domain)

        self.source.get_link_report = tracking_report
        GpoAuditor(self.source, observers=[lambda r: order.append(("emit", r.policy_id))]).audit(
            DOMAIN, include_all=True
        )
        self.assertEqual(order[:3], [("fetch", "a"), ("emit", "a"), ("fetch", "b")])

    def test_records_are_immutable(self):
        record = GpoAuditor(self.source).audit(DOMAIN, include_all=True)[0]
        with self.assertRaises(Exception):
            record.name = "changed"


class TestAuditOutput(unittest.TestCase):
    def setUp(self):
        self.source = FakeSource(
            [PolicyObject("a", "A"), PolicyObject("b", "B")],
            {"a": linked(True), "b": LinkReport()},
        )

    def test_export_sink_receives_all_records(self):
        sink = MagicMock()
        sink.required_capabilities = ("csv",)
        renderer = MagicMock()
        records = GpoAuditor(self.source).audit(DOMAIN, include_all=True, export_sink=sink, renderer=renderer)

        sink.write.assert_called_once()
        written, domain = sink.write.call_args.args
        self.assertEqual(domain, DOMAIN)
        self.assertEqual(written, records)
        self.assertEqual(written[0], PolicyRecord(
            DOMAIN, "A", PolicyStatus.STILL_USED, PolicyAction.KEEP, ("contoso.com/OU0",), "a"
        ))
        self.assertEqual(written[1].status, PolicyStatus.UNUSED_UNLINKED)
        renderer.render.assert_not_called()

    def test_no_export_renders_summary(self):
        renderer = MagicMock()
        records = GpoAuditor(self.source).audit(DOMAIN, include_all=True, renderer=renderer)
        renderer.render.assert_called_once_with(records)

    def test_missing_export_capability_is_export_error(self):
        sink = MagicMock()
        sink.required_capabilities = ("no_such_spreadsheet_module_12345",)
        auditor = GpoAuditor(self.source)
        with self.assertLogs(level="ERROR"):
            records = auditor.audit(DOMAIN, include_all=True, export_sink=sink)
        self.assertEqual(len(records), 2)
        sink.write.assert_not_called()
        self.assertIsInstance(auditor.errors[0], ExportError)

    def test_sink_write_failure_keeps_records(self):
        sink = MagicMock()
        sink.required_capabilities = ()
        sink.write.side_effect = ExportError("disk full")
        auditor = GpoAuditor(self.source)
        with self.assertLogs("gpoaudit.services.gpo_auditor", level="ERROR"):
            records = auditor.audit(DOMAIN, include_all=True, export_sink=sink)
        self.assertEqual(len(records), 2)
        self.assertEqual(len(auditor.errors), 1)

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_audit_policies_wrapper(self, stdout):
        records = audit_policies(DOMAIN, name_filter="a", source=self.source)
        self.assertEqual([r.name for r in records], ["A"])

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_audit_policies_prints_by_default(self, stdout):
        audit_policies(DOMAIN, include_all=True, source=self.source)
        output = stdout.getvalue()
        self.assertIn("Module 'GroupPolicy' imported.", output)
        self.assertIn("A: StillUsed -> Keep (contoso.com/OU0)", output)
        self.assertIn("B: UnusedUnlinked -> Delete (Not linked)", output)
        self.assertIn("Status", output)
        self.assertIn("Action", output)

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_audit_policies_can_be_silenced(self, stdout):
        records = audit_policies(DOMAIN, include_all=True, source=self.source, observers=[], renderer=False)
        self.assertEqual(len(records), 2)
        self.assertNotIn("StillUsed", stdout.getvalue())

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_audit_policies_validates_first(self, stdout):
        with self.assertRaises(ConfigurationError):
            audit_policies(DOMAIN, source=self.source)
        self.assertEqual(self.source.list_calls, 0)


if __name__ == "__main__":
    unittest.main()
