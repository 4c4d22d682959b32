MODEL_GRAMMAR = r"""
    start: _item*

    _item: import_stmt
         | requires_stmt
         | statement

    // --- Directives ---
    import_stmt: "import" dotted WILDCARD? ";"
    requires_stmt: "requires" dotted ";"

    // --- Statements ---
    statement: annotation* (var_decl | dist_assign) ";"

    annotation: "@" NAME ("(" [annotation_param ("," annotation_param)*] ")")?
    annotation_param: NAME "=" expr

    var_decl: class_name NAME "=" expr
    dist_assign: class_name NAME "~" expr

    class_name: dotted ARRAY_SUFFIX?

    // --- Expressions ---
    ?expr: call
         | nexus_call
         | array
         | literal
         | NAME                                  -> identifier

    call: dotted "(" [argument ("," argument)*] ")"
    nexus_call: "nexus" "(" [argument ("," argument)*] ")"
    argument: NAME "=" expr

    array: "[" [expr ("," expr)*] "]"

    literal: FLOAT                               -> float_lit
           | INT                                 -> int_lit
           | STRING                              -> string_lit
           | "true"                              -> true_lit
           | "false"                             -> false_lit

    dotted: NAME ("." NAME)*

    WILDCARD: ".*"
    ARRAY_SUFFIX: "[]"
    NAME: /[a-zA-Z_][a-zA-Z0-9_]*/
    FLOAT.2: /-?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?/ | /-?\d+[eE][+-]?\d+/
    INT: /-?\d+/
    STRING: /"[^"\n]*"/ | /'[^'\n]*'/

    %import common.WS
    %ignore WS
    %ignore /\/\/[^\n]*/
    %ignore /\/\*(.|\n)*?\*\//
    %ignore /#[^\n]*/
"""
