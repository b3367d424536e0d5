# Words used to build participant ids. Order here does not matter, the list
# is shuffled with a seed before use, but removing or adding words changes
# every id generated afterwards.
PROGRAMMING_LANGUAGES = [
    "ada", "agda", "algol", "alice", "apl", "applescript", "arc", "assembly",
    "awk", "ballerina", "bash", "basic", "bcpl", "boo", "c", "carbon",
    "ceylon", "chapel", "clean", "clojure", "cobol", "coffeescript", "coq",
    "crystal", "csharp", "cpp", "curry", "cython", "d", "dart", "delphi",
    "dylan", "eiffel", "elixir", "elm", "erlang", "euphoria", "factor",
    "fantom", "forth", "fortran", "fsharp", "gleam", "go", "groovy", "hack",
    "haskell", "haxe", "hope", "idris", "io", "j", "janet", "java",
    "javascript", "jolie", "julia", "kotlin", "ladder", "lisp", "logo",
    "lua", "lucid", "mercury", "miranda", "ml", "modula", "nim", "nix",
    "oberon", "ocaml", "octave", "odin", "opal", "oz", "pascal", "perl",
    "php", "pike", "pony", "postscript", "powershell", "prolog", "purescript",
    "python", "q", "r", "racket", "raku", "reason", "rebol", "red", "rexx",
    "ring", "ruby", "rust", "sather", "scala", "scheme", "scratch", "self",
    "simula", "smalltalk", "snobol", "solidity", "sql", "swift", "tcl",
    "typescript", "unicon", "v", "vala", "verilog", "vhdl", "wolfram", "xojo",
    "yorick", "zig",
]
