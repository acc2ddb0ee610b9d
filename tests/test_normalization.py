from pathlib import Path

import pytest

from codetime.classifier import StaticClassifier, framework_labels, null_classifier
from codetime.normalization import normalize_language_label


@pytest.mark.parametrize(
    "language_id, label",
    [
        ("typescriptreact", "TypeScript"),
        ("JavaScript", "JavaScript"),
        ("python", "Python"),
        ("cpp", "C++"),
        ("shellscript", "Shell"),
        ("yml", "YAML"),
        ("", "Unknown"),
        (None, "Unknown"),
        ("unknown", "Unknown"),
        ("elixir", "Elixir"),
        ("objective-c", "Objective-C"),
    ],
)
def test_normalize_language_label(language_id, label):
    assert normalize_language_label(language_id) == label


class TestClassifier:
    def test_static_classifier_matches_name_or_path(self):
        classifier = StaticClassifier({"web": ["React"], "/srv/api": ["Django"]})
        assert classifier(Path("/home/me/web")) == {"React"}
        assert classifier(Path("/srv/api")) == {"Django"}
        assert classifier(Path("/srv/other")) == set()

    def test_labels_fall_back_to_unknown(self):
        assert framework_labels(null_classifier, Path("/srv/api")) == ["Unknown"]

    def test_labels_are_sorted_and_deduplicated(self):
        classifier = StaticClassifier({"web": ["Vite", "React", "Vite"]})
        assert framework_labels(classifier, Path("/x/web")) == ["React", "Vite"]
