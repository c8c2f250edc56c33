"""Shared fixtures."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pytest

from sfmfeatures.core.features import EXTRACTORS, FeatureType

from tests.factories import FailingExtractor, StubExtractor, create_textured_image


@pytest.fixture
def textured_image():
    return create_textured_image()


@pytest.fixture
def stub_extractor(monkeypatch):
    """Replace the SIFT variant with the deterministic stub extractor."""
    StubExtractor.calls = []
    monkeypatch.setitem(EXTRACTORS, FeatureType.SIFT, StubExtractor)
    yield StubExtractor
    StubExtractor.calls = []


@pytest.fixture
def failing_extractor(monkeypatch):
    StubExtractor.calls = []
    FailingExtractor.fail_width = -1
    monkeypatch.setitem(EXTRACTORS, FeatureType.SIFT, FailingExtractor)
    yield FailingExtractor
    FailingExtractor.fail_width = -1
