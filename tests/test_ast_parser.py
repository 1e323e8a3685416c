"""
Tests for AST Parser — verify the function index, trait-impl detection and
the brace-scanner fallback.
"""

from rustguard.core.ast_parser import collect_imports, is_trait_impl_header, parse_rust


def test_function_index(mixed_rust_code):
    module = parse_rust(mixed_rust_code, "src/lib.rs")
    assert module.parsed
    names = [fn.name for fn in module.functions]
    assert names == ["new", "get", "load", "apply", "fmt", "parse_all", "loads"]

    load = next(fn for fn in module.functions if fn.name == "load")
    assert load.return_type == "Result<()>"
    assert load.start_line == 18
    assert load.end_line == 26
    assert not load.in_trait_impl


def test_trait_impl_membership(mixed_rust_code):
    module = parse_rust(mixed_rust_code, "src/lib.rs")
    fmt = next(fn for fn in module.functions if fn.name == "fmt")
    assert fmt.in_trait_impl
    assert fmt.trait_impl == "impl std::fmt::Display for Config"
    get = next(fn for fn in module.functions if fn.name == "get")
    assert not get.in_trait_impl


def test_parameters_collected(mixed_rust_code):
    module = parse_rust(mixed_rust_code, "src/lib.rs")
    apply = next(fn for fn in module.functions if fn.name == "apply")
    assert [p.name for p in apply.parameters] == ["_strict"]
    assert apply.parameters[0].line == 28


def test_enclosing_function_is_innermost_not_first(mixed_rust_code):
    module = parse_rust(mixed_rust_code, "src/lib.rs")
    assert module.enclosing_function(19).name == "load"
    assert module.enclosing_function(37).name == "fmt"
    assert module.enclosing_function(3) is None


def test_closure_spans(mixed_rust_code):
    module = parse_rust(mixed_rust_code, "src/lib.rs")
    assert module.in_closure(43)
    assert not module.in_closure(14)
    # println! without closure tokens is plain code
    assert not module.in_closure(30)


def test_macro_arguments_with_closures_are_spans():
    source = (
        "fn check(items: &[Option<u8>]) -> Option<()> {\n"
        "    assert!(items\n"
        "        .iter()\n"
        "        .all(|x| x.unwrap() > 0));\n"
        '    let label = format!("a|b {}", 1);\n'
        "    Some(())\n"
        "}\n"
    )
    module = parse_rust(source, "src/lib.rs")
    macros = [block for block in module.closures if block.kind == "macro"]
    assert [(b.start_line, b.end_line) for b in macros] == [(2, 4)]
    assert module.in_closure(4)
    # A pipe inside a string literal is not a closure
    assert not module.in_closure(5)


def test_async_and_generic_flags():
    module = parse_rust("pub async fn run<T: Send>(t: T) -> Option<T> { Some(t) }\n")
    fn = module.functions[0]
    assert fn.is_async
    assert fn.is_generic
    assert fn.return_type == "Option<T>"


def test_imports_collected_across_lines():
    lines = ["use std::{", "    io,", "    fs,", "};", "pub use crate::x::Y;", "fn main() {}"]
    assert collect_imports(lines) == ["use std::{ io, fs, };", "pub use crate::x::Y;"]


def test_fallback_on_syntax_errors(broken_rust_code):
    module = parse_rust(broken_rust_code, "src/server.rs")
    assert not module.parsed
    assert module.parse_errors
    handle = module.functions[0]
    assert handle.name == "handle"
    assert handle.return_type == "Result<Response>"
    assert handle.in_trait_impl
    assert module.imports == ["use anyhow::Result;"]


def test_trait_impl_header_ignores_for_in_generics():
    assert is_trait_impl_header("impl<T> From<T> for Wrapper<T>")
    assert not is_trait_impl_header("impl<F: for<'a> Fn(&'a str)> Runner<F>")
    assert not is_trait_impl_header("impl Config")
