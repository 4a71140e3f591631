import pathlib

from crossboot.toolchain.sanity import PROBE_MESSAGE, write_probe_source
from crossboot.utils.templating import c_string_literal, render_template_str


def test_c_string_literal() -> None:
    assert c_string_literal("hello") == '"hello"'
    assert c_string_literal('say "hi"\n') == '"say \\"hi\\"\\n"'
    assert c_string_literal("C:\\tmp\t") == '"C:\\\\tmp\\t"'


def test_render_probe() -> None:
    src = render_template_str("probe.c", {"message": "hi there"})
    assert "#include <stdio.h>" in src
    assert 'printf("%s\\n", "hi there");' in src
    assert src.endswith("}\n")


def test_write_probe_source(tmp_path: pathlib.Path) -> None:
    p = write_probe_source(tmp_path / "hello.c")
    assert p == tmp_path / "hello.c"
    assert f'"{PROBE_MESSAGE}"' in p.read_text()
