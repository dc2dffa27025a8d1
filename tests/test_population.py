import numpy as np

from colour_quant.core_types import IndexedImage, Palette
from colour_quant.population import PopulationTable, unpack_rows


def _img(rows):
    return np.array(rows, dtype=np.uint8)


def test_counts_in_first_occurrence_order():
    img = _img(
        [
            [[9, 9, 9], [1, 1, 1]],
            [[9, 9, 9], [5, 5, 5]],
            [[1, 1, 1], [9, 9, 9]],
        ]
    )
    table = PopulationTable.build(img)
    assert table.colours.tolist() == [[9, 9, 9], [1, 1, 1], [5, 5, 5]]
    assert table.counts.tolist() == [3, 2, 1]
    assert len(table) == 3
    assert table.total_pixels == 6
    assert not table.over_capacity


def test_entries_start_unselected():
    table = PopulationTable.build(_img([[[1, 2, 3], [1, 2, 3], [4, 5, 6]]]))
    entries = table.entries()
    assert [(e.colour, e.count) for e in entries] == [((1, 2, 3), 2), ((4, 5, 6), 1)]
    assert not any(e.is_selected for e in entries)


def test_sorted_by_count_is_stable():
    table = PopulationTable(
        np.array([[1, 0, 0], [2, 0, 0], [3, 0, 0], [4, 0, 0]], dtype=np.uint8),
        np.array([1, 5, 1, 5]),
    )
    ordered = table.sorted_by_count()
    assert ordered.colours[:, 0].tolist() == [2, 4, 1, 3]
    assert ordered.counts.tolist() == [5, 5, 1, 1]
    assert table.top_colours(3)[:, 0].tolist() == [2, 4, 1]


def test_missing_or_empty_image():
    assert PopulationTable.build(None) is None
    assert PopulationTable.build(np.zeros((0, 0, 3), dtype=np.uint8)) is None


def test_indexed_image_counts_over_palette():
    pal = Palette.from_colours([(7, 7, 7), (1, 1, 1), (7, 7, 7), (3, 3, 3)])
    idx = np.array([[1, 0, 2], [2, 1, 1]], dtype=np.uint8)
    table = PopulationTable.build(IndexedImage(idx, pal))
    # (3,3,3) is unused, the two (7,7,7) entries fold together.
    assert table.colours.tolist() == [[1, 1, 1], [7, 7, 7]]
    assert table.counts.tolist() == [3, 3]


def test_over_capacity_warns(monkeypatch, capsys):
    monkeypatch.setattr(PopulationTable, "capacity", 2)
    table = PopulationTable.build(_img([[[1, 1, 1], [2, 2, 2], [3, 3, 3]]]))
    assert len(table) == 3
    assert table.over_capacity
    assert "[warn]" in capsys.readouterr().out


def test_unpack_rows():
    packed = np.array([0x010203, 0xFF0080], dtype=np.int64)
    assert unpack_rows(packed).tolist() == [[1, 2, 3], [255, 0, 128]]


def test_entries_take_selection_arrays():
    table = PopulationTable.build(_img([[[1, 1, 1], [2, 2, 2], [3, 3, 3]]]))
    selected = np.array([False, True, True])
    palette_index = np.array([0, 4, 1])
    entries = table.entries(selected, palette_index)
    assert [e.selected for e in entries] == [None, 4, 1]
    assert [e.is_selected for e in entries] == [False, True, True]
