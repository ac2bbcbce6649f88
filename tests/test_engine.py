"""
Tests for the traversal engine: script literals, escape hatches, test-file
exclusion and watched symbols.
"""

import ast

import pytest

from conftest import byte_col, check_source
from cosmopolint.config import LintConfig
from cosmopolint.engine import (
    RULE_SCRIPT,
    RULE_SYMBOL,
    ScriptLiteralChecker,
    WatchedSymbolChecker,
    iter_preorder,
    run_pass,
)
from cosmopolint.errors import PassInputError
from cosmopolint.frontend import ImportResolver, load_source, parse_source
from cosmopolint.nodes import NodeKind, classify


PKG_FOO_HATCHES = ["(pkg_foo.main).escape_hatch", "(pkg_foo.main).pri18ntln"]


def _rules(findings):
    return [(f.rule_id, f.line) for f in findings]


class TestScriptLiterals:
    """Detection of disallowed script characters in string literals."""

    def test_han_literal(self, check):
        """One finding at the literal, quoting it."""
        findings = check('print("当前系统时间:")\n')
        assert len(findings) == 1
        f = findings[0]
        assert f.rule_id == RULE_SCRIPT
        assert f.severity == "ERROR"
        assert (f.line, f.col) == (1, 7)
        assert f.message == 'string literal contains Han script char(s): "当前系统时间:"'
        assert f.evidence == '"当前系统时间:"'

    def test_ascii_literal(self, check):
        assert check('print("hello")\n') == []

    def test_end_position(self, check):
        """End column is one past the closing quote, in bytes."""
        line = 'x = "中"'
        f = check(line + "\n")[0]
        assert f.end_line == 1
        assert f.end_col == len(line.encode("utf-8")) + 1

    def test_columns_are_byte_based(self, check):
        line = 'x = ("中", "文")'
        findings = check(line + "\n")
        assert [f.col for f in findings] == [byte_col(line, '"中"'), byte_col(line, '"文"')]

    def test_one_finding_per_literal(self, check):
        """Several matching scripts are named in a single finding."""
        findings = check('x = "中文 한국어"\n', scripts=["Han", "Hangul"])
        assert len(findings) == 1
        assert "Han, Hangul script" in findings[0].message

    def test_escaped_characters_not_reported(self, check):
        assert check('x = "\\u4e2d"\n') == []

    def test_comments_not_reported(self, check):
        assert check("x = 1  # 中文注释\n") == []

    def test_docstring_is_a_literal(self, check):
        findings = check('"""模块说明"""\n')
        assert _rules(findings) == [(RULE_SCRIPT, 1)]

    def test_multiline_literal_quotes_first_line(self, check):
        findings = check('x = """first\n中文\n"""\n')
        assert len(findings) == 1
        assert findings[0].message.endswith('"""first ...')
        assert findings[0].end_line == 3

    def test_implicit_concatenation_is_one_literal(self, check):
        findings = check('x = ("abc"\n     "中文")\n')
        assert len(findings) == 1
        assert findings[0].line == 1

    def test_fstring_literal_text_and_fields(self, check):
        """The f-string's own text and literals inside its fields are separate findings."""
        findings = check('name = "x"\nmsg = f"你好 {name} {\'世界\'}"\n')
        assert _rules(findings) == [(RULE_SCRIPT, 2), (RULE_SCRIPT, 2)]
        assert sorted(f.evidence for f in findings) == ["'世界'", 'f"你好 {name} {\'世界\'}"']

    def test_fstring_field_literal_only(self, check):
        """Han text only inside a replacement field is reported at that literal."""
        findings = check('msg = f"id={\'世界\'}"\n')
        assert [f.evidence for f in findings] == ["'世界'"]

    def test_fstring_without_script_chars(self, check):
        assert check('name = "x"\nmsg = f"hello {name!r:>10}"\n') == []

    def test_bytes_literals_are_ignored(self, check):
        assert check("x = b'abc'\n") == []

    def test_import_statements_are_pruned(self):
        """Nothing below an import statement is visited by the script walk."""

        class RecordingChecker(ScriptLiteralChecker):
            def __init__(self, *args):
                super().__init__(*args)
                self.visited = []

            def _should_descend(self, node):
                self.visited.append(node)
                return super()._should_descend(node)

        src = parse_source("from 中文模块 import 名字\nimport 模块 as 别名\nx = 1\n")
        imports = [n for n in src.tree.body if classify(n) is NodeKind.IMPORT]
        below = {id(n) for imp in imports for n in ast.walk(imp) if n is not imp}
        assert len(imports) == 2 and below

        checker = RecordingChecker(src, ImportResolver.for_source(src), LintConfig())
        assert checker.run() == []
        visited = {id(n) for n in checker.visited}
        assert all(id(imp) in visited for imp in imports)
        assert not visited & below
        assert any(isinstance(n, ast.Assign) for n in checker.visited)

    def test_other_scripts_off_by_default(self, check):
        assert check('x = "привет"\n') == []

    def test_other_scripts_when_configured(self, check):
        findings = check('x = "привет"\n', scripts=["Cyrillic"])
        assert "Cyrillic" in findings[0].message


class TestEscapeHatches:
    """Suppression of the script check inside escape-hatch calls."""

    def test_hatch_suppresses_literal(self, check):
        text = """
        from gettext import gettext as _
        msg = _("不应该报告这个")
        """
        assert len(check(text)) == 1
        assert check(text, escape_hatches=["(gettext).gettext"]) == []

    def test_without_hatch_literal_is_reported(self, check):
        text = """
        from gettext import gettext as _
        msg = _("应该报告这个")
        """
        assert len(check(text, escape_hatches=["(gettext).ngettext"])) == 1

    def test_hatch_via_module_attribute(self, check):
        text = """
        import gettext
        msg = gettext.gettext("不应该报告这个")
        """
        assert check(text, escape_hatches=["(gettext).gettext"]) == []

    def test_nested_calls_inside_hatch(self, check):
        """Suppression covers the whole argument subtree, at any depth."""
        text = """
        from myapp.i18n import tr
        msg = tr("一", fmt(["二", {"k": "三"}], other("四")))
        """
        assert check(text, escape_hatches=["(myapp.i18n).tr"]) == []

    def test_sibling_outside_hatch_is_reported(self, check):
        text = """
        from myapp.i18n import tr
        print(tr("不报"), "要报")
        """
        findings = check(text, escape_hatches=["(myapp.i18n).tr"])
        assert len(findings) == 1
        assert '"要报"' in findings[0].message

    def test_hatch_inside_fstring_field(self, check):
        """A hatch call in a replacement field suppresses its own arguments."""
        text = """
        from gettext import gettext as _
        name = "x"
        msg = f"{_('不应该报告')} {name}"
        """
        assert len(check(text)) == 1
        assert check(text, escape_hatches=["(gettext).gettext"]) == []

    def test_fstring_text_outside_hatch_is_reported(self, check):
        text = """
        from gettext import gettext as _
        msg = f"要报 {_('不报')}"
        """
        findings = check(text, escape_hatches=["(gettext).gettext"])
        assert len(findings) == 1
        assert findings[0].evidence.startswith('f"要报')

    def test_installed_builtin_hatch(self, check):
        """A bare entry matches a name installed into builtins, like gettext.install()'s ``_``."""
        text = """
        import gettext
        gettext.install("app")
        msg = _("不应该报告")
        """
        assert len(check(text)) == 1
        assert check(text, escape_hatches=["_"]) == []

    def test_bare_hatch_does_not_override_imports(self, check):
        text = """
        from myapp.util import _
        msg = _("应该报告")
        """
        assert len(check(text, escape_hatches=["_"])) == 1

    def test_local_alias_as_hatch(self, check):
        """A type alias defined in the module works as a marker."""
        text = """
        R = str
        x = R("不应该报告这个")
        """
        assert check(text, module="app.views", escape_hatches=["(app.views).R"]) == []

    def test_builtin_hatch(self, check):
        assert check('x = str("中文")\n', escape_hatches=["str"]) == []

    def test_shadowed_hatch_name_is_not_a_hatch(self, check):
        text = """
        from gettext import gettext as _
        def f(_):
            return _("应该报告")
        """
        assert len(check(text, escape_hatches=["(gettext).gettext"])) == 1

    def test_unresolved_callee_keeps_checking(self, check):
        """Calls the resolver cannot resolve are not hatches."""
        text = """
        obj.translate("应该报告")
        make()("也应该报告")
        """
        findings = check(text, escape_hatches=["(gettext).gettext"])
        assert len(findings) == 2

    def test_malformed_hatch_is_ignored(self, check):
        text = """
        from gettext import gettext as _
        _("应该报告")
        """
        assert len(check(text, escape_hatches=["gettext.gettext"])) == 1


class TestWatchedSymbols:
    """Detection of locale-dependent API uses."""

    def test_attribute_use(self, check):
        line = "t = time.localtime()"
        findings = check("import time\n" + line + "\n")
        assert len(findings) == 1
        f = findings[0]
        assert f.rule_id == RULE_SYMBOL
        assert f.message == "usage of time.localtime"
        assert (f.line, f.col) == (2, byte_col(line, "localtime"))
        assert f.end_col == f.col + len("localtime")

    def test_from_import_use(self, check):
        text = """
        from time import localtime
        t = localtime()
        """
        findings = check(text)
        assert _rules(findings) == [(RULE_SYMBOL, 3)]

    def test_import_itself_not_reported(self, check):
        assert check("from time import localtime\n") == []

    def test_reference_without_call(self, check):
        """Any use counts, not only calls."""
        assert len(check("import time\nf = time.localtime\n")) == 1

    def test_reported_inside_escape_hatch(self, check):
        text = """
        import time
        from gettext import gettext as _
        _("现在", time.localtime())
        """
        findings = check(text, escape_hatches=["(gettext).gettext"])
        assert _rules(findings) == [(RULE_SYMBOL, 4)]

    def test_reported_inside_fstring(self, check):
        text = """
        import time
        msg = f"{time.localtime()}"
        """
        assert _rules(check(text)) == [(RULE_SYMBOL, 3)]

    def test_other_time_functions_not_reported(self, check):
        assert check("import time\ntime.time()\ntime.gmtime()\n") == []

    def test_shadowed_module_not_reported(self, check):
        text = """
        def f(time):
            return time.localtime()
        """
        assert check(text) == []

    def test_outermost_comprehension_iterable(self, check):
        """The first iterable of a comprehension sees the enclosing scope."""
        text = """
        import time
        r = [time for time in [time.localtime()]]
        """
        assert _rules(check(text)) == [(RULE_SYMBOL, 3)]

    def test_custom_watched_symbol(self, check):
        text = """
        import locale
        locale.setlocale(locale.LC_ALL, "")
        """
        findings = check(text, watched_symbols=["(locale).setlocale"])
        assert [f.message for f in findings] == ["usage of locale.setlocale"]

    def test_no_watched_symbols(self, check):
        assert check("import time\ntime.localtime()\n", watched_symbols=[]) == []


class TestTestFiles:
    """Whole-file exclusion of test code."""

    TEXT = 'import time\nx = "中文"\ny = time.localtime()\n'

    def test_test_file_skipped_by_default(self, check):
        assert check(self.TEXT, path="tests/test_app.py") == []

    def test_test_file_checked_when_asked(self, check):
        findings = check(self.TEXT, path="tests/test_app.py", look_at_tests=True)
        assert _rules(findings) == [(RULE_SCRIPT, 2), (RULE_SYMBOL, 3)]

    def test_suffix_convention(self, check):
        assert check(self.TEXT, path="app_test.py") == []

    def test_regular_file_checked(self, check):
        assert len(check(self.TEXT, path="app.py")) == 2

    def test_watched_checker_skips_too(self):
        src = parse_source(self.TEXT, path="test_x.py")
        checker = WatchedSymbolChecker(src, ImportResolver.for_source(src), LintConfig())
        assert checker.run() == []


class TestRunPass:
    """The combined pass."""

    def test_sample_module_with_hatches(self, pkg_foo_main):
        src = load_source(pkg_foo_main)
        cfg = LintConfig.build(escape_hatches=PKG_FOO_HATCHES)
        findings = run_pass(src, ImportResolver.for_source(src), cfg)
        assert _rules(findings) == [(RULE_SCRIPT, 11), (RULE_SYMBOL, 11), (RULE_SYMBOL, 13)]
        line13 = src.lines[12]
        assert findings[2].col == byte_col(line13, "time.localtime()", offset=len("time."))

    def test_sample_module_without_hatches(self, pkg_foo_main):
        src = load_source(pkg_foo_main)
        findings = run_pass(src, ImportResolver.for_source(src), LintConfig())
        assert _rules(findings) == [
            (RULE_SCRIPT, 11),
            (RULE_SYMBOL, 11),
            (RULE_SCRIPT, 12),
            (RULE_SCRIPT, 13),
            (RULE_SYMBOL, 13),
        ]

    def test_findings_in_source_order(self, check):
        text = 'import time\ny = time.localtime(); x = "中"\n'
        findings = check(text)
        assert [f.col for f in findings] == sorted(f.col for f in findings)

    def test_deeply_nested_expression(self, check):
        """Long operator chains are walked without exhausting the interpreter stack."""
        text = "x = " + " + ".join(["1"] * 800) + "\ny = '中'\nimport time\nz = time.localtime\n"
        assert _rules(check(text)) == [(RULE_SCRIPT, 2), (RULE_SYMBOL, 4)]
        assert sum(1 for _ in iter_preorder(parse_source(text).tree)) > 1600

    def test_idempotent(self, pkg_foo_main):
        src = load_source(pkg_foo_main)
        resolver = ImportResolver.for_source(src)
        cfg = LintConfig.build(escape_hatches=PKG_FOO_HATCHES)
        assert run_pass(src, resolver, cfg) == run_pass(src, resolver, cfg)

    def test_default_config(self):
        src = parse_source('x = "中"\n')
        assert len(run_pass(src, ImportResolver.for_source(src))) == 1

    def test_missing_tree(self):
        with pytest.raises(PassInputError):
            run_pass(None, None)

    def test_missing_resolver(self):
        src = parse_source("x = 1\n")
        with pytest.raises(PassInputError):
            run_pass(src, None)

    def test_custom_resolver(self):
        """Any object with resolve() can stand in for the front-end."""

        class NothingResolves:
            def resolve(self, node):
                return None

        src = parse_source('import time\ntime.localtime("中")\n')
        findings = run_pass(src, NothingResolves(), LintConfig())
        assert _rules(findings) == [(RULE_SCRIPT, 2)]

    def test_every_finding_inside_a_node(self, pkg_foo_main):
        """Finding spans fall within the source text."""
        src = load_source(pkg_foo_main)
        for f in run_pass(src, ImportResolver.for_source(src), LintConfig()):
            assert 1 <= f.line <= f.end_line <= len(src.lines)
            assert f.col <= len(src.lines[f.line - 1].encode("utf-8"))


class TestNodeKinds:
    """Classification used by the checkers."""

    @pytest.mark.parametrize("code,kind", [
        ("'x'", NodeKind.LITERAL),
        ("f'{x}'", NodeKind.LITERAL),
        ("f(x)", NodeKind.CALL),
        ("x", NodeKind.IDENTIFIER),
        ("x.y", NodeKind.IDENTIFIER),
        ("1", NodeKind.OTHER),
        ("b'x'", NodeKind.OTHER),
    ])
    def test_expressions(self, code, kind):
        node = ast.parse(code, mode="eval").body
        assert classify(node) is kind

    def test_imports(self):
        tree = ast.parse("import a\nfrom b import c\n")
        assert [classify(n) for n in tree.body] == [NodeKind.IMPORT, NodeKind.IMPORT]
