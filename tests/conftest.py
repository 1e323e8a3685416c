"""
Test fixtures shared across all RustGuard tests.
"""

from pathlib import Path

import pytest


@pytest.fixture
def result_fn_source():
    """A Result-returning function with one fixable unwrap."""
    return "fn load() -> Result<i32, E> { let v = maybe().unwrap(); Ok(v) }\n"


@pytest.fixture
def literal_unwrap_source():
    """The unwrap spelling only appears inside a string literal."""
    return 'fn load() -> Result<(), E> { let msg = "call .unwrap() here"; Ok(()) }\n'


@pytest.fixture
def trait_impl_source():
    """Unwrap inside a trait implementation with a fixed signature."""
    return "impl Trait for Type { fn f(&self) { x.unwrap(); } }\n"


@pytest.fixture
def mixed_rust_code():
    """Realistic module exercising every rule."""
    return '''use std::collections::HashMap;
use anyhow::{Context, Result};

pub struct Config {
    values: HashMap<String, String>,
}

impl Config {
    pub fn new() -> Self {
        Config { values: HashMap::new() }
    }

    pub fn get(&self, key: &str) -> Option<&String> {
        let value = self.values.get(key).unwrap();
        Some(value)
    }

    pub fn load(&mut self, path: &str) -> Result<()> {
        let text = std::fs::read_to_string(path).expect("config file must exist");
        for line in text.lines() {
            if let Some((k, v)) = line.split_once('=') {
                self.values.insert(k.to_string(), v.to_string());
            }
        }
        Ok(())
    }

    pub fn apply(&self, _strict: bool) {
        let count = self.values.len();
        println!("{}", count);
        let _ = self.values.get("x");
    }
}

impl std::fmt::Display for Config {
    fn fmt(&self, f: &mut std::fmt::Formatter<'_>) -> std::fmt::Result {
        let first = self.values.keys().next().unwrap();
        write!(f, "{}", first)
    }
}

fn parse_all(items: Vec<String>) -> Result<Vec<i32>> {
    let parsed: Vec<i32> = items.iter().map(|s| s.parse::<i32>().unwrap()).collect();
    Ok(parsed)
}

#[cfg(test)]
mod tests {
    use super::*;

    #[test]
    fn loads() {
        let mut c = Config::new();
        c.load("x").unwrap();
    }
}
'''


@pytest.fixture
def clean_rust_code():
    """Code with no violations."""
    return '''use std::io;

pub fn read_number(input: &str) -> Result<i32, std::num::ParseIntError> {
    let n = input.trim().parse::<i32>()?;
    Ok(n * 2)
}

pub fn first(items: &[i32]) -> Option<i32> {
    items.first().copied()
}
'''


@pytest.fixture
def broken_rust_code():
    """Unbalanced syntax that tree-sitter rejects."""
    return '''use anyhow::Result;

impl Handler for Server {
    fn handle(&self, req: Request) -> Result<Response> {
        let body = req.body().unwrap();
        let x = (1 + ;
        Ok(Response::new(body))
    }
}
'''


def make_large_file(lines: int) -> str:
    """A syntactically valid file of exactly *lines* physical lines."""
    body = [f"    let v{i} = {i};" for i in range(lines - 2)]
    return "fn filler() {\n" + "\n".join(body) + "\n}\n"


@pytest.fixture
def crate_root(tmp_path: Path, mixed_rust_code, clean_rust_code) -> Path:
    """A small crate on disk with production, test and build-output files."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "lib.rs").write_text(mixed_rust_code)
    (src / "util.rs").write_text(clean_rust_code)
    (tmp_path / "tests").mkdir()
    (tmp_path / "tests" / "integration.rs").write_text(
        "#[test]\nfn it_works() { let v: Option<i32> = Some(1); v.unwrap(); }\n"
    )
    (tmp_path / "target").mkdir()
    (tmp_path / "target" / "generated.rs").write_text("fn junk() { x.unwrap(); }\n")
    return tmp_path
