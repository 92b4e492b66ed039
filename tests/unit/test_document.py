"""Unit tests for the page model and materializer."""

import pytest

from sketchflow.document import Materializer, Page, normalize_shape_id
from sketchflow.errors import DocumentError, ResolutionError
from sketchflow.models import Binding, Point, Shape, ShapeKind, ShapeStyle
from sketchflow.parser import parse_dsl


def assert_point(point, x, y):
    assert point.x == pytest.approx(x)
    assert point.y == pytest.approx(y)


class TestShapes:
    """Tests for materializing basic shapes."""

    def test_explicit_rectangle(self, page, materializer):
        """Test a rectangle with position, size and defaults."""
        ids = materializer.apply(parse_dsl('rect 10,20 100x50 "A"'))

        assert ids == ["shape:1"]
        shape = page.get("shape:1")
        assert (shape.x, shape.y, shape.w, shape.h) == (10, 20, 100, 50)
        assert shape.kind == ShapeKind.RECTANGLE
        assert shape.label == "A"
        assert shape.style == ShapeStyle(
            color="black", fill="none", dash="draw", font="draw", size="m"
        )

    def test_ids_are_sequential(self, materializer):
        """Test deterministic counter ids."""
        ids = materializer.apply(parse_dsl('rect "A"\nellipse "B"\ntext "C"'))
        assert ids == ["shape:1", "shape:2", "shape:3"]

    def test_custom_ids_are_prefixed(self, materializer):
        """Test that custom ids get the shape: prefix once."""
        ids = materializer.apply(parse_dsl("rect id=box\nrect id=shape:other"))
        assert ids == ["shape:box", "shape:other"]

    def test_counter_skips_taken_ids(self, materializer):
        """Test that generated ids never collide with custom ones."""
        ids = materializer.apply(parse_dsl("rect id=2\nrect"))
        assert ids == ["shape:2", "shape:3"]

    def test_duplicate_id(self, page, materializer):
        """Test that a duplicate id fails the whole batch."""
        with pytest.raises(DocumentError) as exc_info:
            materializer.apply(parse_dsl("rect id=a\nrect id=a"))
        assert str(exc_info.value) == 'Line 2: Duplicate shape id "shape:a"'
        assert exc_info.value.line == 2
        assert len(page) == 0

    def test_duplicate_id_from_earlier_batch(self, page, materializer):
        """Test that an arrow reusing an existing id names its own line."""
        materializer.apply(parse_dsl('rect 0,0 "A" id=a'))
        with pytest.raises(DocumentError) as exc_info:
            materializer.apply(parse_dsl('rect 0,300 "B"\n\narrow "A" -> "B" id=a'))

        assert str(exc_info.value).startswith("Line 3: ")
        assert len(page) == 1

    def test_auto_place_on_empty_page(self, page, materializer):
        """Test that an unpositioned first shape goes to the origin."""
        materializer.apply(parse_dsl('rect "A"'))
        assert (page.get("shape:1").x, page.get("shape:1").y) == (0, 0)

    def test_auto_place_below_content(self, page, materializer):
        """Test that unpositioned shapes go below existing content."""
        materializer.apply(parse_dsl('rect 0,0 100x50 "A"\nrect "B"\nrect "C"'))
        assert page.get("shape:2").y == 90
        assert page.get("shape:3").y == 250

    def test_label_fit_growth(self, page, materializer):
        """Test that a long label widens a default rectangle."""
        materializer.apply(parse_dsl('rect 0,0 "' + "x" * 20 + '"'))
        assert page.get("shape:1").w == 336

    def test_note_defaults(self, page, materializer):
        """Test that notes default to yellow and use their tier box."""
        materializer.apply(parse_dsl('note "Hi" size=s'))
        shape = page.get("shape:1")
        assert shape.style.color == "yellow"
        assert (shape.w, shape.h) == (180, 140)
        assert shape.label == "Hi"

    def test_text_shape(self, page, materializer):
        """Test that text shapes keep their body as the label."""
        materializer.apply(parse_dsl('text 0,0 "one\\ntwo" size=l'))
        shape = page.get("shape:1")
        assert shape.label == "one\ntwo"
        assert shape.w == 280

    def test_frame_default_name(self, page, materializer):
        """Test that unnamed frames are called Frame."""
        materializer.apply(parse_dsl("frame 0,0"))
        assert page.get("shape:1").label == "Frame"

    def test_invalid_arrow_padding(self):
        """Test that arrow padding must be a finite non-negative number."""
        with pytest.raises(ValueError):
            Materializer(arrow_padding=-1)


class TestConnectors:
    """Tests for connector resolution and bindings."""

    def test_arrow_between_labels(self, page, materializer, two_boxes_input):
        """Test border points and bindings for an arrow between two shapes."""
        materializer.apply(parse_dsl(two_boxes_input))
        ids = materializer.apply(parse_dsl('arrow "A" -> "B"'))

        arrow = page.get(ids[0])
        assert arrow.kind == ShapeKind.CONNECTOR
        assert_point(arrow.start_point, 108, 50)
        assert_point(arrow.end_point, 292, 50)
        assert_point(Point(arrow.x, arrow.y), 108, 50)
        assert arrow.start == Point(0, 0)
        assert page.bindings() == [
            Binding(connector_id="shape:3", shape_id="shape:1", terminal="start"),
            Binding(connector_id="shape:3", shape_id="shape:2", terminal="end"),
        ]

    def test_arrow_to_coordinate(self, page, materializer):
        """Test that a coordinate endpoint is used as-is and not bound."""
        materializer.apply(parse_dsl('rect 0,0 100x100 id=a\narrow a -> 500,50'))
        arrow = page.get("shape:2")

        assert_point(arrow.start_point, 108, 50)
        assert_point(arrow.end_point, 500, 50)
        assert page.bindings() == [
            Binding(connector_id="shape:2", shape_id="shape:a", terminal="start")
        ]

    def test_arrow_by_prefixed_id(self, page, materializer):
        """Test that endpoints may name the full shape: id."""
        materializer.apply(parse_dsl("rect 0,0 100x100 id=a\narrow shape:a -> 0,500"))
        assert page.bindings_for("shape:a")[0].terminal == "start"

    def test_arrow_between_coordinates(self, page, materializer):
        """Test origin and relative endpoints for a coordinate-only arrow."""
        materializer.apply(parse_dsl("arrow 100,100 -> 0,20"))
        arrow = page.get("shape:1")

        assert (arrow.x, arrow.y) == (0, 20)
        assert arrow.start == Point(100, 80)
        assert arrow.end == Point(0, 0)
        assert page.bindings() == []

    def test_arrow_style_and_label(self, page, materializer):
        """Test that connector options are kept."""
        materializer.apply(parse_dsl('arrow 0,0 -> 10,10 label="go" color=red dash=dotted'))
        arrow = page.get("shape:1")
        assert arrow.label == "go"
        assert arrow.style.color == "red"
        assert arrow.style.dash == "dotted"

    def test_id_beats_label(self, page, materializer):
        """Test that an id match wins over a label match."""
        materializer.apply(
            parse_dsl('rect 300,0 100x100 "a" id=first\nrect 0,0 100x100 "b" id=a')
        )
        materializer.apply(parse_dsl("arrow a -> 50,500"))
        assert page.bindings()[0].shape_id == "shape:a"

    def test_first_label_match_wins(self, page, materializer):
        """Test that duplicate labels resolve to the earliest shape."""
        materializer.apply(parse_dsl('rect 0,0 "Dup"\nrect 500,0 "Dup"'))
        materializer.apply(parse_dsl('arrow "Dup" -> 0,900'))
        assert page.bindings()[0].shape_id == "shape:1"

    def test_custom_arrow_padding(self, page):
        """Test that arrow padding is configurable."""
        materializer = Materializer(page, arrow_padding=0)
        materializer.apply(parse_dsl('rect 0,0 100x100 "A"\narrow "A" -> 500,50'))
        assert_point(page.get("shape:2").start_point, 100, 50)

    def test_unresolved_endpoint(self, page, materializer):
        """Test that an unknown endpoint names the token and fails the batch."""
        with pytest.raises(ResolutionError) as exc_info:
            materializer.apply(parse_dsl('rect 0,0 "A"\narrow "Ghost" -> "A"'))

        assert exc_info.value.token == "Ghost"
        assert exc_info.value.line == 2
        assert 'Unable to resolve arrow target "Ghost"' in str(exc_info.value)
        assert len(page) == 0
        assert page.bindings() == []

    def test_arrow_to_shape_from_same_batch(self, page, materializer):
        """Test that later instructions see shapes from the same batch."""
        ids = materializer.apply(parse_dsl('rect 0,0 100x100 "A"\narrow 500,50 -> "A"'))
        assert len(ids) == 2
        assert_point(page.get("shape:2").end_point, 108, 50)


class TestFrames:
    """Tests for frame post-processing."""

    def test_frames_move_to_bottom(self, page, materializer):
        """Test that frames are drawn below all other shapes."""
        materializer.apply(
            parse_dsl('rect 0,0 100x100 "A"\nframe -50,-50 300x300 "Group"\nrect 10,10 10x10')
        )
        assert [shape.kind for shape in page.shapes] == [
            ShapeKind.FRAME,
            ShapeKind.RECTANGLE,
            ShapeKind.RECTANGLE,
        ]

    def test_frame_grows_to_enclose(self, page, materializer):
        """Test that a frame grows to enclose nearby shapes with padding."""
        materializer.apply(parse_dsl('frame 0,0 100x100 "F"\nrect 50,50 200x100 "R"'))
        frame = page.get("shape:1")
        assert (frame.x, frame.y, frame.w, frame.h) == (0, 0, 270, 170)

    def test_frame_grows_left_and_up(self, page, materializer):
        """Test growth toward negative coordinates."""
        materializer.apply(parse_dsl('frame 0,0 100x100\nrect -60,-40 40x40'))
        frame = page.get("shape:1")
        assert (frame.x, frame.y) == (-80, -60)
        assert (frame.w, frame.h) == (180, 160)

    def test_far_shapes_are_ignored(self, page, materializer):
        """Test that shapes far away from a frame leave it unchanged."""
        materializer.apply(parse_dsl("frame 0,0 100x100\nrect 1000,1000 10x10"))
        frame = page.get("shape:1")
        assert (frame.x, frame.y, frame.w, frame.h) == (0, 0, 100, 100)

    def test_frame_grows_in_later_batch(self, page, materializer):
        """Test that existing frames also grow for shapes added later."""
        materializer.apply(parse_dsl("frame 0,0 100x100"))
        materializer.apply(parse_dsl("rect 90,0 40x40"))
        assert page.get("shape:1").w == 150


class TestPage:
    """Tests for the Page container."""

    def test_normalize_shape_id(self):
        """Test id normalisation."""
        assert normalize_shape_id("a") == "shape:a"
        assert normalize_shape_id("shape:a") == "shape:a"

    def test_find(self, page):
        """Test lookup by id, bare id and label."""
        page.add(Shape(id="shape:a", kind=ShapeKind.RECTANGLE, label="Alpha"))
        assert page.find("shape:a").id == "shape:a"
        assert page.find("a").id == "shape:a"
        assert page.find("Alpha").id == "shape:a"
        assert page.find("Beta") is None

    def test_duplicate_add(self, page):
        """Test that adding a duplicate id fails."""
        page.add(Shape(id="shape:a", kind=ShapeKind.RECTANGLE))
        with pytest.raises(DocumentError):
            page.add(Shape(id="shape:a", kind=ShapeKind.ELLIPSE))

    def test_bindings_of_connector(self, page, materializer, two_boxes_input):
        """Test looking up bindings from the connector side."""
        materializer.apply(parse_dsl(two_boxes_input + '\narrow "A" -> 500,500'))

        assert page.bindings_of("shape:3") == [
            Binding(connector_id="shape:3", shape_id="shape:1", terminal="start")
        ]
        assert page.bindings_for("shape:3") == []
        assert page.bindings_of("shape:1") == []
        assert page.bindings_of("shape:missing") == []

    def test_bind_unknown_shape(self, page):
        """Test that bindings need both shapes on the page."""
        page.add(Shape(id="shape:c", kind=ShapeKind.CONNECTOR))
        with pytest.raises(DocumentError):
            page.bind(Binding(connector_id="shape:c", shape_id="shape:missing", terminal="end"))

    def test_from_records(self):
        """Test loading an external page, keeping foreign kinds."""
        page = Page.from_records(
            [
                {
                    "id": "shape:a",
                    "type": "geo",
                    "geo": "rectangle",
                    "x": 0,
                    "y": 0,
                    "w": 100,
                    "h": 100,
                    "label": "Existing",
                    "color": "red",
                },
                {"id": "img", "type": "image", "x": 5, "y": 5, "w": 10, "h": 10},
            ]
        )
        assert page.get("shape:a").kind == ShapeKind.RECTANGLE
        assert page.get("shape:a").style.color == "red"
        assert page.get("shape:img").kind == "image"

    def test_materialize_onto_loaded_page(self):
        """Test resolution and auto-placement against loaded shapes."""
        page = Page.from_records(
            [{"id": "a", "type": "rect", "x": 0, "y": 0, "w": 100, "h": 100, "label": "Existing"}]
        )
        Materializer(page).apply(parse_dsl('arrow "Existing" -> 500,50\nrect "New"'))

        assert page.bindings_for("shape:a")[0].connector_id == "shape:2"
        assert page.get("shape:3").y == 140

    def test_from_records_invalid_number(self):
        """Test that malformed records are rejected."""
        with pytest.raises(DocumentError) as exc_info:
            Page.from_records([{"type": "rect", "x": "left"}])
        assert 'Shape record 0 has an invalid "x"' in str(exc_info.value)

    def test_from_records_missing_type(self):
        """Test that records need a type."""
        with pytest.raises(DocumentError):
            Page.from_records([{"x": 0, "y": 0}])

    def test_records_round_trip_bindings(self, page, materializer, two_boxes_input):
        """Test that exported records load back with their bindings."""
        materializer.apply(parse_dsl(two_boxes_input + '\narrow "A" -> "B"'))
        records = page.to_records()

        loaded = Page.from_records(records["shapes"], records["bindings"])
        assert loaded.bindings() == page.bindings()
        assert loaded.get("shape:3").end_point == page.get("shape:3").end_point
