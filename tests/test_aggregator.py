import hashlib
import random

from unittest import TestCase

from md5tabsum.aggregator import (CHUNK_POSITIONS, EMPTY_TABLE_CHECKSUM, canonical_number,
                                  chunk_sum_terms, chunk_sums, row_hash, split_row_hash,
                                  table_checksum)


def md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


class TestAggregator(TestCase):
    """Provide unit tests for the order independent checksum."""

    def setUp(self):
        self.rows = [row_hash([canonical_number(i), md5(f"name {i}")]) for i in range(50)]

    def test_empty_table(self):
        self.assertEqual(EMPTY_TABLE_CHECKSUM, md5(""))
        self.assertEqual(table_checksum([]), (0, EMPTY_TABLE_CHECKSUM))

    def test_chunk_positions(self):
        self.assertEqual(CHUNK_POSITIONS, ((1, 8), (9, 8), (17, 8), (25, 8)))
        self.assertEqual(
            chunk_sum_terms(lambda start, length: f"s({start},{length})"),
            ["s(1,8)", "s(9,8)", "s(17,8)", "s(25,8)"],
        )

    def test_split_row_hash(self):
        self.assertEqual(
            split_row_hash("00000001ffffffff0000000a00000000"),
            [1, 0xFFFFFFFF, 10, 0],
        )
        self.assertRaises(ValueError, split_row_hash, "abc")

    def test_single_row(self):
        rowhash = md5("x")
        chunks = split_row_hash(rowhash)
        expected = md5("".join(str(c) for c in chunks))
        self.assertEqual(table_checksum([rowhash]), (1, expected))

    def test_chunk_sums_wide(self):
        count, sums = chunk_sums(["ffffffff" * 4] * 3)
        self.assertEqual(count, 3)
        self.assertEqual(sums, [3 * 0xFFFFFFFF] * 4)

    def test_order_independence(self):
        shuffled = list(self.rows)
        random.Random(42).shuffle(shuffled)
        self.assertEqual(table_checksum(self.rows), table_checksum(shuffled))
        self.assertEqual(table_checksum(self.rows), table_checksum(reversed(self.rows)))

    def test_determinism(self):
        self.assertEqual(table_checksum(self.rows), table_checksum(list(self.rows)))

    def test_change_sensitivity(self):
        changed = list(self.rows)
        changed[7] = row_hash([canonical_number(7), md5("name seven")])
        self.assertNotEqual(table_checksum(self.rows)[1], table_checksum(changed)[1])
        self.assertNotEqual(table_checksum(self.rows)[1], table_checksum(self.rows[1:])[1])

    def test_two_rows_any_order(self):
        a = row_hash([canonical_number(1), md5("a")])
        b = row_hash([canonical_number(2), md5("b")])
        self.assertEqual(table_checksum([a, b]), table_checksum([b, a]))
        self.assertEqual(table_checksum([a, b])[0], 2)

    def test_canonical_number(self):
        self.assertEqual(canonical_number(0.5), "0.5")
        self.assertEqual(canonical_number(-0.5), "-0.5")
        self.assertEqual(canonical_number("1.50"), "1.5")
        self.assertEqual(canonical_number("2.00"), "2")
        self.assertEqual(canonical_number(100), "100")
        self.assertEqual(canonical_number("0.000"), "0")
