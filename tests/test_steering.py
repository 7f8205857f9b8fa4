import pytest

from serverless_power import BUNDLED_POWER_DIR
from serverless_power.errors import SteeringNotFoundError
from serverless_power.steering import (
    list_steering,
    read_steering,
    resolve_steering_name,
    search_steering,
    split_sections,
)


def test_list_bundled_steering_files():
    names = [e["name"] for e in list_steering(BUNDLED_POWER_DIR)]
    assert names == ["event-source-mappings", "getting-started", "optimization",
                     "troubleshooting", "web-app-deployment"]
    troubleshooting = next(e for e in list_steering(BUNDLED_POWER_DIR) if e["name"] == "troubleshooting")
    assert troubleshooting["title"] == "Troubleshooting"
    assert troubleshooting["file"] == "steering/troubleshooting.md"
    assert "AWS credentials not configured" in troubleshooting["headings"]


def test_list_steering_without_directory(tmp_path):
    assert list_steering(str(tmp_path)) == []


def test_title_falls_back_to_file_name(make_power):
    root = make_power(steering={"notes.md": "no heading here\n"})
    assert list_steering(root)[0]["title"] == "notes"


@pytest.mark.parametrize("name", ["troubleshooting", "troubleshooting.md", "steering/troubleshooting.md",
                                  " troubleshooting "])
def test_resolve_accepts_name_forms(name):
    path = resolve_steering_name(BUNDLED_POWER_DIR, name)
    assert path.endswith("troubleshooting.md")


def test_resolve_power_manifest():
    assert resolve_steering_name(BUNDLED_POWER_DIR, "POWER.md").endswith("POWER.md")
    assert read_steering(BUNDLED_POWER_DIR, "POWER").startswith("---")


@pytest.mark.parametrize("name", ["", "../POWER.md", "steering/../../etc/passwd", "a/b.md", "missing"])
def test_resolve_rejects_bad_names(name):
    with pytest.raises(SteeringNotFoundError):
        resolve_steering_name(BUNDLED_POWER_DIR, name)


def test_missing_name_lists_available():
    with pytest.raises(SteeringNotFoundError, match="getting-started"):
        read_steering(BUNDLED_POWER_DIR, "deploy")


def test_split_sections_ignores_headings_in_code():
    text = "intro\n\n# One\nbody\n```bash\n# not a heading\n```\n## Two\nmore\n"
    sections = split_sections(text)
    assert [(s["heading"], s["level"]) for s in sections] == [("", 0), ("One", 1), ("Two", 2)]
    assert "# not a heading" in sections[1]["body"]
    assert sections[2]["line"] == 8


def test_split_sections_drops_empty_preamble():
    assert split_sections("# Only\ntext")[0]["heading"] == "Only"


def test_search_finds_troubleshooting_remedy():
    results = search_steering(BUNDLED_POWER_DIR, "credentials not configured", limit=3)
    assert results[0]["name"] == "troubleshooting"
    assert results[0]["heading"] == "AWS credentials not configured"
    assert "aws configure" in results[0]["excerpt"]
    assert len(results) <= 3


def test_search_weights_headings(make_power):
    root = make_power(steering={
        "a.md": "# Other\nkafka kafka\n",
        "b.md": "# Kafka\nsomething\n",
    })
    results = search_steering(root, "KAFKA")
    assert [r["name"] for r in results] == ["b", "a"]
    assert results[0]["score"] == 3


def test_search_ties_keep_file_order(make_power):
    root = make_power(steering={"b.md": "# B\nsqs\n", "a.md": "# A\nsqs\n"})
    assert [r["name"] for r in search_steering(root, "sqs")] == ["a", "b"]


def test_search_no_hits():
    assert search_steering(BUNDLED_POWER_DIR, "zzzqqq") == []


@pytest.mark.parametrize("query,limit", [("", 5), ("   ", 5), ("sam", 0)])
def test_search_rejects_bad_input(query, limit):
    with pytest.raises(ValueError):
        search_steering(BUNDLED_POWER_DIR, query, limit=limit)


def test_search_matches_whole_terms(make_power):
    root = make_power(steering={
        "a.md": "# Samples\nA sample app and more samples.\n",
        "b.md": "# Build\nRun sam build, then `sam_deploy`.\n",
    })
    results = search_steering(root, "sam")
    assert [r["name"] for r in results] == ["b"]
    assert results[0]["score"] == 1
    assert search_steering(root, "sam_deploy")[0]["name"] == "b"
