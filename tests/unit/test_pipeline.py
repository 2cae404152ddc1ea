from __future__ import annotations

import pickle
from pathlib import Path
from typing import Any, Dict, List

import pytest

from dataflow_jobs import pipeline
from dataflow_jobs.config import Settings
from dataflow_jobs.domain.errors import ConfigurationError, InvalidSplitError, UnsupportedTypeError
from dataflow_jobs.domain.schema import SchemaField
from dataflow_jobs.encoding.encoder import encode
from dataflow_jobs.encoding.example_proto import Example
from dataflow_jobs.encoding.tfrecord import read_records
from dataflow_jobs.partition import SplitRatios, assign_split, make_generator
from dataflow_jobs.pipeline import ExportOptions, _chunked, _encode_chunk, run_export

QUERY = "SELECT * FROM dataset.table"
ROW_COUNT = 50
CHUNK_SIZE = 7


def _options(output_dir: Path, **overrides: Any) -> ExportOptions:
    values: Dict[str, Any] = {"read_query": QUERY, "output_directory": str(output_dir)}
    values.update(overrides)
    return ExportOptions(**values)


def _read_split(directory: Path) -> List[bytes]:
    records: List[bytes] = []
    for path in sorted(directory.glob("*.tfrecord")):
        with path.open("rb") as f:
            records.extend(read_records(f))
    return records


class _InlinePool:
    def __init__(self, processes: int) -> None:
        self.processes = processes

    def imap(self, func, iterable):
        return map(func, iterable)

    def __enter__(self) -> "_InlinePool":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False


class _PicklingPool(_InlinePool):
    """Hands worker errors back pickled, the way a process pool does."""

    def imap(self, func, iterable):
        for item in iterable:
            try:
                result = func(item)
            except Exception as exc:
                raise pickle.loads(pickle.dumps(exc)) from None
            yield result


class _InlineContext:
    def __init__(self, pool_class: type = _InlinePool) -> None:
        self.pool_processes: List[int] = []
        self._pool_class = pool_class

    def Pool(self, processes: int) -> _InlinePool:  # noqa: N802
        self.pool_processes.append(processes)
        return self._pool_class(processes)


def _files_under(directory: Path) -> List[Path]:
    return sorted(path for path in directory.rglob("*") if path.is_file())


def _unsupported_source(make_source):
    schema = (SchemaField(name="id", type="INTEGER"), SchemaField(name="area", type="GEOGRAPHY"))
    rows = [{"id": i} for i in range(3)] + [{"id": 3, "area": "POINT(1 2)"}]
    return make_source(schema, rows)


def test_default_split_writes_everything_to_train(tmp_path: Path, in_memory_source) -> None:
    result = run_export(_options(tmp_path), in_memory_source)

    assert result.counts == {"train": ROW_COUNT, "test": 0, "validation": 0}
    assert in_memory_source.queries == [QUERY]
    assert len(_read_split(tmp_path / "train")) == ROW_COUNT
    # Empty splits still get their shard file.
    assert (tmp_path / "test" / "output-00000-of-00001.tfrecord").stat().st_size == 0
    assert (tmp_path / "val" / "output-00000-of-00001.tfrecord").exists()


def test_written_records_decode_to_examples(tmp_path: Path, in_memory_source) -> None:
    run_export(_options(tmp_path), in_memory_source)

    first = Example.FromString(_read_split(tmp_path / "train")[0])
    features = first.features.feature
    assert list(features["id"].int64_list.value) == [0]
    assert list(features["name"].bytes_list.value) == [b"row-0"]
    assert list(features["active"].int64_list.value) == [1]


def test_split_counts_match_seeded_draws(tmp_path: Path, in_memory_source) -> None:
    options = _options(
        tmp_path, training_percentage=0.6, testing_percentage=0.2, validation_percentage=0.2
    )
    result = run_export(options, in_memory_source)

    rng = make_generator(options.seed)
    ratios = options.ratios()
    expected = {"train": 0, "test": 0, "validation": 0}
    for _ in range(ROW_COUNT):
        expected[assign_split(rng, ratios).label] += 1

    assert result.counts == expected
    assert result.total_rows == ROW_COUNT


def test_export_is_reproducible(tmp_path: Path, make_source, sample_schema, sample_rows) -> None:
    kwargs = dict(training_percentage=0.5, testing_percentage=0.3, validation_percentage=0.2)
    run_export(_options(tmp_path / "a", **kwargs), make_source(sample_schema, sample_rows))
    run_export(_options(tmp_path / "b", **kwargs), make_source(sample_schema, sample_rows))

    for subdirectory in ("train", "test", "val"):
        assert _read_split(tmp_path / "a" / subdirectory) == _read_split(
            tmp_path / "b" / subdirectory
        )


def test_invalid_split_fails_before_reading_rows(tmp_path: Path, in_memory_source) -> None:
    options = _options(
        tmp_path, training_percentage=0.6, testing_percentage=0.1, validation_percentage=0.1
    )

    with pytest.raises(InvalidSplitError):
        run_export(options, in_memory_source)
    assert in_memory_source.queries == []
    assert not (tmp_path / "train").exists()


def test_unsupported_column_type_fails_the_run(tmp_path: Path, make_source) -> None:
    schema = (SchemaField(name="amount", type="NUMERIC"),)
    source = make_source(schema, [{"amount": "1.50"}])

    with pytest.raises(UnsupportedTypeError):
        run_export(_options(tmp_path), source)


def test_failed_export_leaves_no_shard_files(tmp_path: Path, make_source) -> None:
    options = _options(
        tmp_path, training_percentage=0.5, testing_percentage=0.3, validation_percentage=0.2
    )

    with pytest.raises(UnsupportedTypeError):
        run_export(options, _unsupported_source(make_source))

    assert _files_under(tmp_path) == []


def test_successful_export_leaves_no_temporary_files(tmp_path: Path, in_memory_source) -> None:
    result = run_export(_options(tmp_path, num_shards=2), in_memory_source)

    written = [str(path) for path in _files_under(tmp_path)]
    assert written == sorted(path for paths in result.files.values() for path in paths)
    assert not any(".tmp-" in path for path in written)


def test_parallel_export_reports_worker_error_message(
    tmp_path: Path, monkeypatch, make_source
) -> None:
    monkeypatch.setattr(
        "dataflow_jobs.pipeline.mp.get_context", lambda method: _InlineContext(_PicklingPool)
    )
    options = _options(tmp_path, workers=2, chunk_size=2)

    with pytest.raises(UnsupportedTypeError) as excinfo:
        run_export(options, _unsupported_source(make_source))

    assert str(excinfo.value) == "Unsupported type: GEOGRAPHY"
    assert excinfo.value.type_name == "GEOGRAPHY"
    assert _files_under(tmp_path) == []


def test_out_of_range_percentages_are_configuration_errors(tmp_path: Path) -> None:
    options = _options(
        tmp_path, training_percentage=1.5, testing_percentage=-0.5, validation_percentage=0.0
    )

    with pytest.raises(ConfigurationError, match="Invalid split percentages"):
        options.ratios()


@pytest.mark.parametrize(
    "override", [{"workers": 0}, {"chunk_size": 0}, {"num_shards": 0}, {"output_suffix": "/x"}]
)
def test_invalid_overrides_are_configuration_errors(override: Dict[str, Any]) -> None:
    settings = Settings(read_query="SELECT 1", output_directory="/tmp/out")

    with pytest.raises(ConfigurationError, match="Invalid export options"):
        ExportOptions.from_settings(settings, **override)


def test_records_round_robin_across_shards(tmp_path: Path, make_source, sample_schema) -> None:
    source = make_source(sample_schema, [{"id": i} for i in range(5)])
    result = run_export(_options(tmp_path, num_shards=2), source)

    shard_counts = []
    for path in result.files["train"]:
        with open(path, "rb") as f:
            shard_counts.append(sum(1 for _ in read_records(f)))
    assert shard_counts == [3, 2]
    assert result.files["train"][0].endswith("train/output-00000-of-00002.tfrecord")


def test_custom_suffix(tmp_path: Path, in_memory_source) -> None:
    result = run_export(_options(tmp_path, output_suffix=".tfr"), in_memory_source)
    assert all(path.endswith(".tfr") for paths in result.files.values() for path in paths)


def test_encode_chunk_uses_generator_for_its_chunk(in_memory_source) -> None:
    ratios = SplitRatios(training=0.5, testing=0.3, validation=0.2)
    chunks = list(_chunked(in_memory_source.rows(QUERY), CHUNK_SIZE, 100, ratios))

    assert [len(chunk.items) for chunk in chunks] == [7, 7, 7, 7, 7, 7, 7, 1]

    second = chunks[1]
    rng = make_generator(100, 1)
    expected = [(assign_split(rng, ratios).index, encode(item)) for item in second.items]
    assert _encode_chunk(second) == expected


@pytest.mark.parametrize("workers", [2, 3])
def test_parallel_export_does_not_depend_on_worker_count(
    tmp_path: Path, monkeypatch, make_source, sample_schema, sample_rows, workers: int
) -> None:
    contexts: List[_InlineContext] = []

    def fake_get_context(method: str) -> _InlineContext:
        assert method == "spawn"
        context = _InlineContext()
        contexts.append(context)
        return context

    monkeypatch.setattr("dataflow_jobs.pipeline.mp.get_context", fake_get_context)
    kwargs = dict(
        training_percentage=0.5,
        testing_percentage=0.3,
        validation_percentage=0.2,
        chunk_size=CHUNK_SIZE,
    )

    baseline = run_export(
        _options(tmp_path / "two", workers=2, **kwargs), make_source(sample_schema, sample_rows)
    )
    result = run_export(
        _options(tmp_path / "n", workers=workers, **kwargs), make_source(sample_schema, sample_rows)
    )

    assert contexts[-1].pool_processes == [workers]
    assert result.counts == baseline.counts
    for subdirectory in ("train", "test", "val"):
        assert _read_split(tmp_path / "n" / subdirectory) == _read_split(
            tmp_path / "two" / subdirectory
        )


def test_options_from_settings_applies_non_null_overrides() -> None:
    settings = Settings(
        read_query="SELECT 1",
        output_directory="gs://bucket/out",
        training_percentage=0.8,
        testing_percentage=0.2,
        split_seed=7,
    )

    options = ExportOptions.from_settings(
        settings, output_directory="/tmp/elsewhere", seed=None, workers=4
    )

    assert options.read_query == "SELECT 1"
    assert options.output_directory == "/tmp/elsewhere"
    assert options.seed == 7
    assert options.workers == 4
    assert options.ratios() == SplitRatios(training=0.8, testing=0.2, validation=0.0)


def test_options_require_query_and_output_directory() -> None:
    with pytest.raises(ConfigurationError, match="read query"):
        ExportOptions.from_settings(Settings(read_query=None, output_directory="/tmp/out"))
    with pytest.raises(ConfigurationError, match="output directory"):
        ExportOptions.from_settings(Settings(read_query="SELECT 1", output_directory=None))


def test_result_as_dict_is_serializable(tmp_path: Path, in_memory_source) -> None:
    payload = run_export(_options(tmp_path), in_memory_source).as_dict()

    assert payload["total_rows"] == ROW_COUNT
    assert set(payload["directories"]) == {"train", "test", "validation"}
    assert payload["directories"]["validation"].endswith("/val/")
    assert payload["profile"]["label"] == "query-to-tfrecord"


def test_module_exports() -> None:
    assert set(pipeline.__all__) == {"ExportOptions", "ExportResult", "run_export"}
