"""Tests for write instructions and deletion reports."""

import pytest

from docspine.compose.writes import DeletionReport, WriteInstruction, WriteOperation
from docspine.core.errors import MutationError


class TestWriteInstruction:
    def test_defaults_to_update(self):
        instruction = WriteInstruction("post", {"title": "x"})
        assert instruction.operation is WriteOperation.UPDATE
        assert instruction.match is None

    def test_instance_passes_through(self):
        instruction = WriteInstruction("post", operation=WriteOperation.DELETE)
        assert WriteInstruction.from_value(instruction) is instruction

    def test_from_dict(self):
        instruction = WriteInstruction.from_value(
            {"source": "links", "data": {"post": 1, "tag": 3}, "operation": "create"}
        )
        assert instruction == WriteInstruction("links", {"post": 1, "tag": 3}, WriteOperation.CREATE)

    def test_from_dict_with_match(self):
        instruction = WriteInstruction.from_value(
            {"source": "links", "operation": "delete", "match": {"post": 1, "tag": 2}}
        )
        assert instruction.match == {"post": 1, "tag": 2}
        assert instruction.data == {}

    def test_unknown_operation(self):
        with pytest.raises(MutationError, match="upsert"):
            WriteInstruction.from_value({"source": "post", "operation": "upsert"})

    @pytest.mark.parametrize("value", [{"data": {}}, ["post", {}], None])
    def test_malformed(self, value):
        with pytest.raises(MutationError):
            WriteInstruction.from_value(value)


class TestDeletionReport:
    def test_to_dict(self):
        report = DeletionReport("post", [{"id": 1}])
        assert report.to_dict() == {"source": "post", "deleted": [{"id": 1}]}

    def test_empty_by_default(self):
        assert DeletionReport("links").deleted == []
