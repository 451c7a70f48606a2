"""Unit tests for result records."""

import json

from cellscope.analyzer.results import AnalysisResult, Definition, DefinitionKind, Occurrence


def make_result():
    return AnalysisResult(
        locals=[Occurrence('x', 10, 11)],
        usages=[Occurrence('x', 20, 21), Occurrence('y', 24, 25)],
        definitions={'f': Definition('f', 0, 1, DefinitionKind.FUNCTION)},
        free_usages=[Occurrence('y', 24, 25)],
    )


class TestAnalysisResult:
    """Name helpers, merging and serialization."""

    def test_defaults_are_empty_and_not_shared(self):
        first, second = AnalysisResult(), AnalysisResult()
        first.usages.append(Occurrence('a', 0, 1))

        assert second.usages == []
        assert second.definitions == {}

    def test_name_sets(self):
        result = make_result()

        assert result.local_names() == {'x'}
        assert result.usage_names() == {'x', 'y'}
        assert result.free_names() == {'y'}
        assert result.definition_names() == {'f'}

    def test_merge_appends_and_overrides_definitions(self):
        result = make_result()
        other = AnalysisResult(
            usages=[Occurrence('z', 40, 41)],
            definitions={'f': Definition('f', 30, 31), 'g': Definition('g', 35, 36)},
        )

        merged = result.merge(other)

        assert merged is result
        assert [u.name for u in result.usages] == ['x', 'y', 'z']
        assert list(result.definitions) == ['f', 'g']
        assert result.definitions['f'].start == 30
        assert result.definitions['f'].kind == DefinitionKind.ASSIGNMENT

    def test_to_dict_is_json_serializable(self):
        data = make_result().to_dict()

        assert data['definitions']['f'] == {'name': 'f', 'start': 0, 'end': 1, 'kind': 'function'}
        assert data['locals'] == [{'name': 'x', 'start': 10, 'end': 11}]
        assert json.loads(json.dumps(data)) == data
