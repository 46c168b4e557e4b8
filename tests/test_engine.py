"""Transformation engine tests: traversal rules, import handling, file processing."""
import asyncio
import re

import pytest

from i18n_ast.engine import TransformationEngine
from i18n_ast.errors import ErrorCategory, FormatterError, KeyCollisionError, ParseError
from i18n_ast.formatting import Formatter, PassthroughFormatter
from i18n_ast.registry import TranslationRegistry

IMPORT_LINE = 'import i18next from "@/i18n";'


@pytest.fixture
def engine(make_config, sequential_keys):
    def _engine(**overrides):
        return TransformationEngine(
            make_config(**overrides),
            PassthroughFormatter(),
            key_factory=sequential_keys,
        )

    return _engine


class TestLiteralRewrites:

    def test_end_to_end_literal(self, engine):
        result = engine().transform('const msg = "你好世界";\n', "a.ts")
        assert result.text == (
            f"{IMPORT_LINE}\n"
            'const msg = i18next.t("prefix.00000001" /* 你好世界 */);\n'
        )
        assert [(e.key, e.text) for e in result.entries] == [("prefix.00000001", "你好世界")]
        assert result.import_added is True

    def test_escaped_literal_registers_cooked_text(self, engine):
        result = engine().transform("const a = '你\\'好';\n", "a.ts")
        assert result.entries[0].text == "你'好"

    def test_untranslatable_file_only_gains_the_import(self, engine):
        result = engine().transform('const a = "hello";\n', "a.ts")
        assert result.text == f'{IMPORT_LINE}\nconst a = "hello";\n'
        assert result.entries == []

    def test_locale_selects_script(self, engine):
        source = 'const a = "hello";\nconst b = "你好";\n'
        result = engine(locales="en").transform(source, "a.ts")
        assert 'const a = i18next.t("prefix.00000001" /* hello */);' in result.text
        assert 'const b = "你好";' in result.text

    def test_object_keys_stay_but_values_are_rewritten(self, engine):
        result = engine().transform('const o = { "名字": "张三" };\n', "a.ts")
        assert '{ "名字": i18next.t("prefix.00000001" /* 张三 */) }' in result.text

    def test_type_positions_are_not_rewritten(self, engine):
        source = (
            'type Greeting = "你好";\n'
            'interface Props { label: "标签" }\n'
            'const g: Greeting = "你好";\n'
        )
        result = engine().transform(source, "a.ts")
        assert 'type Greeting = "你好";' in result.text
        assert 'interface Props { label: "标签" }' in result.text
        assert 'const g: Greeting = i18next.t("prefix.00000001" /* 你好 */);' in result.text
        assert len(result.entries) == 1


class TestSkipRules:

    @pytest.mark.parametrize("statement", [
        't("你好");',
        'i18next.t("prefix.abcdef12" /* 你好 */);',
        'console.log("调试", `值 ${x}`);',
        'const m = require("./你好");',
    ])
    def test_builtin_callees_are_untouched(self, engine, statement):
        result = engine().transform(statement + "\n", "a.ts")
        assert result.text == f"{IMPORT_LINE}\n{statement}\n"
        assert result.entries == []

    def test_ignored_callee_keeps_its_arguments(self, engine):
        source = '$t("你好");\nnotify("保存");\n'
        result = engine(ignore_functions=["$t"]).transform(source, "a.ts")
        assert '$t("你好");' in result.text
        assert 'notify(i18next.t("prefix.00000001" /* 保存 */));' in result.text

    def test_import_sources_are_not_rewritten(self, engine):
        source = 'import data from "./数据.json";\nexport { x } from "./导出";\n'
        result = engine().transform(source, "a.ts")
        assert result.entries == []
        assert 'from "./数据.json"' in result.text
        assert 'from "./导出"' in result.text

    def test_second_pass_is_a_no_op(self, engine):
        first = engine().transform(
            'const a = "你好";\nconst b = `共${count}条记录`;\n', "a.ts"
        )
        second = engine().transform(first.text, "a.ts")
        assert second.text == first.text
        assert second.entries == []
        assert second.import_added is False


class TestImportInjection:

    def test_existing_import_is_not_duplicated(self, engine):
        source = "import i18n from '@/i18n';\nconst a = \"你好\";\n"
        result = engine().transform(source, "a.ts")
        assert result.import_added is False
        assert result.text.count("@/i18n") == 1

    def test_other_imports_do_not_count(self, engine):
        result = engine().transform('import x from "@/other";\n', "a.ts")
        assert result.text == f'{IMPORT_LINE}\nimport x from "@/other";\n'

    def test_import_goes_after_directives(self, engine):
        source = '"use client";\nconst a = "hello";\n'
        result = engine(locales="en").transform(source, "a.tsx")
        assert result.text.startswith(f'"use client";\n{IMPORT_LINE}\n')
        assert [e.text for e in result.entries] == ["hello"]

    def test_import_goes_after_hashbang(self, engine):
        result = engine().transform("#!/usr/bin/env node\nrun();\n", "a.js")
        assert result.text == f"#!/usr/bin/env node\n{IMPORT_LINE}\nrun();\n"


class TestTemplateRewrites:

    def test_named_placeholders(self, engine):
        result = engine().transform("const s = `你好${name}世界`;\n", "a.ts")
        assert (
            'const s = i18next.t("prefix.00000001" /* 你好{{name}}世界 */, { name });'
            in result.text
        )
        assert result.entries[0].text == "你好{{name}}世界"

    def test_conjunctive_policy(self, engine):
        source = "const s = `你好${name} world`;\n"
        result = engine().transform(source, "a.ts")
        assert "const s = `你好${name} world`;" in result.text
        assert result.entries == []

    def test_template_without_placeholders_is_literal_text(self, engine):
        result = engine().transform("const s = `你好`;\n", "a.ts")
        assert 'const s = i18next.t("prefix.00000001" /* 你好 */);' in result.text

    def test_member_placeholder_is_skipped_and_recorded(self, engine):
        source = "const s = `你好${user.name}世界`;\n"
        result = engine().transform(source, "a.ts")
        assert "`你好${user.name}世界`" in result.text
        assert result.entries == []
        assert len(result.skipped) == 1
        assert result.skipped[0].category is ErrorCategory.TRANSFORM
        assert "a.ts:1" in result.skipped[0].message

    def test_strings_inside_untranslated_placeholders_are_visited(self, engine):
        source = 'const s = `${ok ? "成功" : "失败"}!`;\n'
        result = engine().transform(source, "a.ts")
        assert [e.text for e in result.entries] == ["成功", "失败"]

    def test_tagged_templates_are_left_alone(self, engine):
        source = "const c = css`color: 红色`;\n"
        result = engine().transform(source, "a.ts")
        assert "css`color: 红色`" in result.text
        assert result.entries == []


class TestMarkupRewrites:

    def test_attribute_and_text(self, engine):
        source = 'const el = <div title="你好">欢迎 光临</div>;\n'
        result = engine().transform(source, "a.tsx")
        assert (
            'const el = <div title={i18next.t("prefix.00000001" /* 你好 */)}>'
            '{i18next.t("prefix.00000002" /* 欢迎 光临 */)}</div>;'
        ) in result.text
        assert [e.text for e in result.entries] == ["你好", "欢迎 光临"]

    def test_text_layout_is_preserved(self, engine):
        source = "const el = (\n  <p>\n    你好\n  </p>\n);\n"
        result = engine().transform(source, "a.jsx")
        assert (
            '  <p>\n    {i18next.t("prefix.00000001" /* 你好 */)}\n  </p>\n'
        ) in result.text

    def test_expression_container_strings_stay_bare(self, engine):
        source = 'const el = <Button label={"提交"} />;\n'
        result = engine().transform(source, "a.tsx")
        assert 'label={i18next.t("prefix.00000001" /* 提交 */)}' in result.text

    def test_character_references_join_the_surrounding_text(self, engine):
        source = "const el = <p>你好&amp;世界</p>;\n"
        result = engine().transform(source, "a.tsx")
        assert (
            'const el = <p>{i18next.t("prefix.00000001" /* 你好&世界 */)}</p>;'
        ) in result.text
        assert [(e.key, e.text) for e in result.entries] == [("prefix.00000001", "你好&世界")]

    def test_untranslatable_references_are_left_alone(self, engine):
        source = 'const el = <p title="A&amp;B">&nbsp;&copy;</p>;\n'
        result = engine().transform(source, "a.tsx")
        assert source in result.text
        assert result.entries == []

    def test_unpaired_surrogate_is_escaped_in_annotation(self, engine):
        result = engine().transform('const a = "你好\\uD800";\n', "a.ts")
        assert 'const a = i18next.t("prefix.00000001" /* 你好\\ud800 */);' in result.text
        assert result.entries[0].text == "你好\ud800"


class TestParseFailures:

    def test_invalid_source_raises(self, engine):
        with pytest.raises(ParseError):
            engine().transform("const = ;\n", "bad.ts")


class _FailingFormatter(Formatter):
    async def format(self, text, path):
        raise FormatterError(path, "boom")


class TestProcessFile:

    def test_rewrites_file_and_commits_entries(self, make_config, sequential_keys, write_source):
        path = write_source("src/a.ts", 'const msg = "你好世界";\n')
        engine = TransformationEngine(
            make_config(), PassthroughFormatter(), key_factory=sequential_keys
        )
        registry = TranslationRegistry()

        report = asyncio.run(engine.process_file(path, registry))

        assert report.rewritten_nodes == 1
        assert registry.snapshot() == {"prefix.00000001": "你好世界"}
        assert re.search(
            r'i18next\.t\("prefix\.00000001" /\* 你好世界 \*/\)',
            path.read_text(encoding="utf-8"),
        )

    def test_formatter_failure_leaves_file_and_registry_untouched(
        self, make_config, sequential_keys, write_source
    ):
        original = 'const msg = "你好世界";\n'
        path = write_source("src/a.ts", original)
        engine = TransformationEngine(
            make_config(), _FailingFormatter(), key_factory=sequential_keys
        )
        registry = TranslationRegistry()

        with pytest.raises(FormatterError):
            asyncio.run(engine.process_file(path, registry))

        assert path.read_text(encoding="utf-8") == original
        assert len(registry) == 0

    def test_key_collision_blocks_the_write(self, make_config, write_source):
        original = 'const msg = "你好世界";\n'
        path = write_source("src/a.ts", original)
        engine = TransformationEngine(
            make_config(), PassthroughFormatter(), key_factory=lambda prefix: f"{prefix}.00000000"
        )
        registry = TranslationRegistry()
        registry.add("prefix.00000000", "已有")

        with pytest.raises(KeyCollisionError):
            asyncio.run(engine.process_file(path, registry))

        assert path.read_text(encoding="utf-8") == original
