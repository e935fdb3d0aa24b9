from __future__ import annotations

import os
import unittest
from datetime import date
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock

from boto3.exceptions import RetriesExceededError
from botocore.exceptions import EndpointConnectionError
from pydantic import ValidationError

from matching_modules.batch import BatchCoordinator, check_destination_folders, preview_group, validate_groups
from matching_modules.models import InvalidBatchError, PreviewStatus, VencimentoGroup
from matching_modules.settings import PathSettings
from matching_modules.sources import MemorySource, S3Source


class BatchCoordinatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.settings = PathSettings(base_path=str(self.base), source_relative="origem",
                                     destination_relative="destino")
        self.source_dir = self.base / "origem" / "2025"
        self.source_dir.mkdir(parents=True)
        for name in ["NF 798541 ACME.pdf", "Fornecedor 769591 R$ 1.101,00.pdf", "NF 555555.pdf"]:
            (self.source_dir / name).write_bytes(b"%PDF")
        self.destination = self.base / "destino" / "2025" / "03-2025" / "10-03-2025"
        self.destination.mkdir(parents=True)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_end_to_end_group(self) -> None:
        coordinator = BatchCoordinator(self.settings)

        report = coordinator.run([
            {"due_date": "2025-03-10", "identifiers": ["798541", "101-1", "769591", "001-001", "798541"]},
        ])

        group = report.groups[0]
        self.assertTrue(report.success)
        self.assertEqual(group.total_notes, 4)
        self.assertEqual(group.total_found, 2)
        self.assertEqual(group.total_copied, 2)
        self.assertEqual(group.total_ignored, 2)
        self.assertEqual(group.total_not_found, 0)
        self.assertEqual(group.copied, ["1- NF 798541 ACME.pdf", "2- Fornecedor 769591 R$ 1.101,00.pdf"])
        self.assertEqual(group.ignored, ["101-1", "001-001"])
        self.assertEqual(sorted(os.listdir(self.destination)), sorted(group.copied))

    def test_missing_destination_fails_only_its_group(self) -> None:
        coordinator = BatchCoordinator(self.settings)

        report = coordinator.run([
            VencimentoGroup(due_date=date(2025, 3, 11), identifiers=["798541"]),
            VencimentoGroup(due_date=date(2025, 3, 10), identifiers=["555555", "4444"]),
        ])

        failed, ok = report.groups
        self.assertEqual(failed.total_copied, 0)
        self.assertEqual(failed.total_found, 0)
        self.assertEqual(failed.total_errors, 1)
        self.assertEqual(failed.errors[0].reason, "destination folder not found")
        self.assertEqual(failed.not_found, ["798541"])
        self.assertEqual(ok.copied, ["1- NF 555555.pdf"])
        self.assertEqual(ok.not_found, ["4444"])
        self.assertFalse(report.success)
        self.assertEqual(report.summary.total_groups, 2)
        self.assertEqual(report.summary.total_errors, 1)
        self.assertEqual(report.summary.total_copied, 1)

    def test_missing_source_folder(self) -> None:
        coordinator = BatchCoordinator(self.settings)

        report = coordinator.run([{"due_date": "2024-03-10", "identifiers": ["798541"]}])

        self.assertEqual(report.groups[0].errors[0].reason, "source folder not found")
        self.assertFalse(report.success)

    def test_not_found_and_ignored_do_not_fail_batch(self) -> None:
        report = BatchCoordinator(self.settings).run([{"due_date": "2025-03-10", "identifiers": ["4444", "12"]}])

        self.assertTrue(report.success)
        self.assertEqual(report.to_dict()["summary"]["total_not_found"], 1)
        self.assertEqual(report.to_dict()["groups"][0]["due_date"], "2025-03-10")

    def test_explicit_memory_source(self) -> None:
        source = MemorySource([("Boleto 1351595.pdf", b"uploaded")])
        coordinator = BatchCoordinator(self.settings, source=source)

        report = coordinator.run([{"due_date": "2025-03-10", "identifiers": ["3001351595"]}])

        self.assertEqual(report.groups[0].copied, ["1- Boleto 1351595.pdf"])
        self.assertEqual((self.destination / "1- Boleto 1351595.pdf").read_bytes(), b"uploaded")

    def test_unreachable_s3_endpoint_keeps_every_group(self) -> None:
        (self.base / "destino" / "2025" / "03-2025" / "11-03-2025").mkdir(parents=True)
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "invoices/NF 798541.pdf", "Size": 4},
                          {"Key": "invoices/NF 555555.pdf", "Size": 4}]},
        ]
        client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.us-east-1.amazonaws.com")
        coordinator = BatchCoordinator(self.settings, source=S3Source(client, "bucket", "invoices/"))

        report = coordinator.run([
            {"due_date": "2025-03-10", "identifiers": ["798541"]},
            {"due_date": "2025-03-11", "identifiers": ["555555"]},
        ])

        self.assertEqual(len(report.groups), 2)
        self.assertEqual([g.not_found for g in report.groups], [["798541"], ["555555"]])
        self.assertEqual(report.summary.total_copied, 0)
        self.assertEqual(os.listdir(self.destination), [])

    def test_exhausted_s3_download_retries_fail_files_not_batch(self) -> None:
        (self.base / "destino" / "2025" / "03-2025" / "11-03-2025").mkdir(parents=True)
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "invoices/NF 798541.pdf", "Size": 4},
                          {"Key": "invoices/NF 555555.pdf", "Size": 4}]},
        ]
        client.head_object.return_value = {"ContentLength": 4}
        client.download_file.side_effect = RetriesExceededError(EndpointConnectionError(endpoint_url="https://s3"))
        coordinator = BatchCoordinator(self.settings, source=S3Source(client, "bucket", "invoices/"))

        report = coordinator.run([
            {"due_date": "2025-03-10", "identifiers": ["798541"]},
            {"due_date": "2025-03-11", "identifiers": ["555555"]},
        ])

        self.assertEqual(len(report.groups), 2)
        self.assertEqual([g.total_errors for g in report.groups], [1, 1])
        self.assertEqual([g.copied for g in report.groups], [[], []])
        self.assertFalse(report.success)

    def test_paths_outside_base_are_rejected_before_copying(self) -> None:
        with TemporaryDirectory() as outside:
            elsewhere = Path(outside) / "2025" / "03-2025" / "10-03-2025"
            elsewhere.mkdir(parents=True)
            cases = {
                "destination": PathSettings(base_path=str(self.base), source_relative="origem",
                                            destination_relative=outside),
                "source": PathSettings(base_path=str(self.base), source_relative=outside,
                                       destination_relative="destino"),
            }
            for label, settings in cases.items():
                with self.subTest(label):
                    report = BatchCoordinator(settings).run([{"due_date": "2025-03-10", "identifiers": ["798541"]}])

                    group = report.groups[0]
                    self.assertEqual(group.errors[0].reason, "path outside base folder")
                    self.assertEqual(group.total_copied, 0)
                    self.assertEqual(os.listdir(elsewhere), [])
                    self.assertEqual(os.listdir(self.destination), [])

    def test_check_destination_folders(self) -> None:
        (self.destination / "old.pdf").write_bytes(b"x")

        statuses = check_destination_folders(self.settings, ["2025-03-10", date(2025, 3, 11)])

        self.assertTrue(statuses[0].exists)
        self.assertFalse(statuses[0].empty)
        self.assertEqual(statuses[0].file_count, 1)
        self.assertFalse(statuses[1].exists)
        self.assertTrue(statuses[1].empty)


class ValidateGroupsTests(unittest.TestCase):
    def test_rejects_out_of_bounds_batches(self) -> None:
        bad_batches = [
            [],
            [{"due_date": "2025-03-10", "identifiers": []}],
            [{"due_date": "10/03/2025", "identifiers": ["798541"]}],
            [{"due_date": "2025-3-5", "identifiers": ["798541"]}],
            [{"due_date": "2025-02-30", "identifiers": ["798541"]}],
            [{"due_date": "2025-03-10", "identifiers": ["   "]}],
            [{"due_date": "2025-03-10", "identifiers": ["9" * 51]}],
            [{"due_date": "2025-03-10", "identifiers": ["1"] * 501}],
            [{"due_date": "2025-03-10", "identifiers": ["1"]}] * 32,
            [{"identifiers": ["1"]}],
        ]
        for groups in bad_batches:
            with self.subTest(groups=str(groups)[:60]):
                with self.assertRaises(InvalidBatchError):
                    validate_groups(groups)

    def test_trims_identifiers(self) -> None:
        groups = validate_groups([{"due_date": "2025-03-10", "identifiers": [" 798541 "]}])
        self.assertEqual(groups[0].identifiers, ("798541",))
        self.assertEqual(groups[0].due_date, date(2025, 3, 10))

    def test_group_is_immutable_and_hashable(self) -> None:
        group = VencimentoGroup(due_date="2025-03-10", identifiers=["798541", "769591"])

        self.assertEqual(group.identifiers, ("798541", "769591"))
        self.assertEqual(hash(group), hash(VencimentoGroup(due_date=date(2025, 3, 10),
                                                           identifiers=("798541", "769591"))))
        with self.assertRaises(ValidationError):
            group.due_date = date(2025, 3, 11)


class PreviewGroupTests(unittest.TestCase):
    def test_classifies_and_plans_names(self) -> None:
        source = MemorySource([
            ("NF 798541 ACME.pdf", b"a"),
            ("NF 798541 copia.pdf", b"b"),
            ("NF 769591.pdf", b"c"),
        ])

        entries = preview_group(["798541", "101", "4444", "769591"], source)

        self.assertEqual(
            [e.status for e in entries],
            [PreviewStatus.AMBIGUOUS, PreviewStatus.IGNORED, PreviewStatus.NOT_FOUND, PreviewStatus.MATCHED],
        )
        self.assertEqual(entries[0].planned_name, "1- NF 798541 ACME.pdf")
        self.assertEqual(len(entries[0].candidates), 2)
        self.assertIsNone(entries[1].planned_name)
        self.assertEqual(entries[3].planned_name, "2- NF 769591.pdf")


if __name__ == "__main__":
    unittest.main()
