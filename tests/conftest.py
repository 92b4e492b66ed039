"""Pytest configuration and shared fixtures for sketchflow tests."""

import pytest

from sketchflow import DiagramGenerator, Materializer, Page, Parser
from sketchflow.models import Point, Shape, ShapeKind, ShapeStyle


@pytest.fixture
def parser():
    """Default Parser instance."""
    return Parser()


@pytest.fixture
def generator():
    """Default DiagramGenerator instance."""
    return DiagramGenerator()


@pytest.fixture
def page():
    """Empty page."""
    return Page()


@pytest.fixture
def materializer(page):
    """Materializer writing to the page fixture."""
    return Materializer(page)


@pytest.fixture
def two_boxes_input():
    """Two labelled boxes side by side."""
    return """
    rect 0,0 100x100 "A"
    rect 300,0 100x100 "B"
    """


@pytest.fixture
def architecture_input():
    """A small architecture diagram using every shape kind and both blocks."""
    return """
    # Services
    frame -40,-60 900x400 "Backend"
    stack horizontal 0,0 gap=40 [
      rect 160x80 "API" id=api color=blue fill=semi
      rect 160x80 "Worker" id=worker
      ellipse 120x120 "Queue" color=orange
    ]
    grid 0,200 cols=2 gap=20 [
      note "Retries\\nthree times" size=s
      text "Deployed nightly" font=mono
    ]
    arrow api -> worker label="jobs"
    arrow "Worker" -> "Queue" dash=dashed
    arrow "Queue" -> 900,500
    """


@pytest.fixture
def sample_shapes():
    """Materialized shapes covering every renderable kind."""
    return [
        Shape(
            id="shape:1",
            kind=ShapeKind.FRAME,
            x=-20,
            y=-20,
            w=400,
            h=260,
            label="Group",
            style=ShapeStyle(color="black", fill="none", dash="draw", font="draw", size="m"),
        ),
        Shape(
            id="shape:2",
            kind=ShapeKind.RECTANGLE,
            x=0,
            y=0,
            w=120,
            h=60,
            label="Box",
            style=ShapeStyle(color="blue", fill="semi", dash="dashed", font="sans", size="m"),
        ),
        Shape(
            id="shape:3",
            kind=ShapeKind.ELLIPSE,
            x=200,
            y=0,
            w=100,
            h=100,
            label="Round",
            style=ShapeStyle(color="green", fill="solid", dash="solid", font="draw", size="l"),
        ),
        Shape(
            id="shape:4",
            kind=ShapeKind.NOTE,
            x=0,
            y=120,
            w=180,
            h=140,
            label="Note\nbody",
            style=ShapeStyle(color="yellow", fill="none", dash="draw", font="draw", size="s"),
        ),
        Shape(
            id="shape:5",
            kind=ShapeKind.TEXT,
            x=200,
            y=150,
            w=280,
            h=28,
            label="Plain text",
            style=ShapeStyle(color="red", fill="none", dash="draw", font="mono", size="m"),
        ),
        Shape(
            id="shape:6",
            kind=ShapeKind.CONNECTOR,
            x=128,
            y=30,
            label="calls",
            style=ShapeStyle(color="black", fill="none", dash="dotted", font="draw", size="m"),
            start=Point(0, 0),
            end=Point(64, 20),
        ),
    ]
