import pytest

from sitecrawler.config import CrawlOptions, load_options, sanitize_path_limits, save_options
from sitecrawler.types import PathLimitRule


def test_defaults():
    options = CrawlOptions.from_dict({})

    assert options.max_pages == 300
    assert options.concurrency == 6
    assert options.timeout_ms == 12000
    assert options.same_host_only
    assert options.scope_to_start_path
    assert options.include_query
    assert options.ignore_hash
    assert options.ignore_job_pages
    assert not options.broken_link_check
    assert ".pdf" in options.exclude_extensions
    assert options.batch_size == 12
    assert options.timeout_seconds == 12.0


def test_from_dict_clamps_and_ignores_unknown_keys():
    options = CrawlOptions.from_dict(
        {
            "maxPages": 100000,
            "concurrency": 0,
            "languagePrefixes": ["en"],
            "somethingElse": True,
        }
    )

    assert options.max_pages == 5000
    assert options.concurrency == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"maxPages": "many"},
        {"sameHostOnly": "yes"},
        {"timeoutMs": 0},
        {"excludePaths": "/jobs"},
        {"pathLimits": {"path": "/job"}},
        {"pathLimits": ["/job"]},
    ],
)
def test_from_dict_rejects_bad_values(payload):
    with pytest.raises(ValueError):
        CrawlOptions.from_dict(payload)


def test_sanitize_path_limits():
    rules = sanitize_path_limits(
        [
            {"path": "job", "maxPages": 10},
            {"path": "/JOB/", "maxPages": 3},
            {"path": "/", "maxPages": 5},
            {"path": "", "maxPages": 5},
            {"path": "/blog/archive", "maxPages": 99999},
            {"path": "/news", "maxPages": "oops"},
            PathLimitRule("/team", 2),
        ]
    )

    assert rules == (
        PathLimitRule("/blog/archive", 5000),
        PathLimitRule("/news", 1),
        PathLimitRule("/team", 2),
        PathLimitRule("/JOB", 3),
    )


def test_to_dict_uses_wire_keys():
    options = CrawlOptions(path_limits=(PathLimitRule("/job", 5),), exclude_paths=("/jobs",))
    payload = options.to_dict()

    assert payload["maxPages"] == 300
    assert payload["pathLimits"] == [{"path": "/job", "maxPages": 5}]
    assert payload["excludePaths"] == ["/jobs"]
    assert CrawlOptions.from_dict(payload) == options


def test_constructor_validates_ranges():
    with pytest.raises(ValueError):
        CrawlOptions(max_pages=0)
    with pytest.raises(ValueError):
        CrawlOptions(concurrency=21)


@pytest.mark.parametrize("suffix", [".json", ".yaml", ".yml"])
def test_presets_round_trip_through_files(tmp_path, suffix):
    options = CrawlOptions(
        max_pages=50,
        broken_link_check=True,
        path_limits=(PathLimitRule("/job", 5),),
    )
    path = tmp_path / f"preset{suffix}"

    save_options(options, path)
    assert load_options(path) == options


def test_load_options_rejects_unknown_suffix(tmp_path):
    path = tmp_path / "preset.toml"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ValueError):
        load_options(path)
