"""
Unit tests for render trees and result reconstruction.
"""

import pytest

from graphql_gateway.query.render import RenderTree, reconstruct


@pytest.fixture
def tree():
    """f0 -> has_sample (f1) -> derived (f2); f0 -> in_case (f3)."""
    t = RenderTree()
    t.new_element("f0", "has_sample")
    t.new_element("f1", "derived")
    t.new_element("f0", "in_case")
    return t


def record(**aliases):
    out = {}
    for alias in ("f0", "f1", "f2", "f3"):
        gid, data = aliases.get(alias, ("", None))
        out[f"{alias}_gid"] = gid
        out[f"{alias}_data"] = data
    return out


class TestRenderTree:
    def test_aliases_minted_in_order(self, tree):
        assert tree.aliases == ["f0", "f1", "f2", "f3"]
        assert [n.alias for n in tree.children("f0")] == ["f1", "f3"]

    def test_unknown_parent_raises(self):
        with pytest.raises(ValueError, match="Unknown parent alias"):
            RenderTree().new_element("f9", "x")


class TestReconstruct:
    """Tests for reconstruct."""

    def test_full_record(self, tree):
        rec = record(
            f0=("p1", {"age": 30}),
            f1=("s1", {"sample_type": "blood"}),
            f2=("a1", {"amount": 2}),
            f3=("c1", {"name": "case-1"}),
        )

        assert reconstruct([rec], tree) == [
            {
                "id": "p1",
                "age": 30,
                "has_sample": [
                    {
                        "id": "s1",
                        "sample_type": "blood",
                        "derived": [{"id": "a1", "amount": 2}],
                    }
                ],
                "in_case": [{"id": "c1", "name": "case-1"}],
            }
        ]

    def test_absent_child_is_empty_list(self, tree):
        """A missing relationship is [] on its parent, never null or omitted."""
        rec = record(f0=("p2", {"age": 45}))

        (result,) = reconstruct([rec], tree)

        assert result["has_sample"] == []
        assert result["in_case"] == []
        assert "derived" not in result

    def test_record_without_root_skipped(self, tree):
        assert reconstruct([record()], tree) == []

    def test_one_object_per_record(self, tree):
        recs = [record(f0=("p1", {})), record(f0=("p1", {}))]
        assert len(reconstruct(recs, tree)) == 2

    def test_payload_not_mutated(self, tree):
        data = {"age": 30}
        reconstruct([record(f0=("p1", data))], tree)
        assert data == {"age": 30}
