"""Variable usage and scope explorer for Julia cells.

Walks a tree-sitter-julia syntax tree and sorts every identifier occurrence
into one of three buckets:

- definitions: global bindings other cells can see
- usages: every read, whether it resolves locally or not
- locals: bindings confined to a nested lexical scope

Classification is purely syntactic. Whether a usage matches a definition
somewhere else is left to whoever builds the dependency graph.
"""
from typing import Callable, List, Optional, Tuple

from tree_sitter import Node

from .document import Document
from .results import AnalysisResult, Definition, DefinitionKind, Occurrence
from .scope import ScopeStack


# Declarations Julia only accepts at top level, so they always define globals
TYPE_DEFINITIONS = {
    'struct_definition': DefinitionKind.STRUCT,
    'abstract_definition': DefinitionKind.ABSTRACT,
    'primitive_definition': DefinitionKind.PRIMITIVE,
}

# Nodes that wrap the parameter list of an anonymous function
PARAMETER_LISTS = {'argument_list', 'tuple_expression', 'parenthesized_expression'}

# Callees that make a method definition a functor: `(p::P)(x) = ...`
FUNCTOR_CALLEES = {'parenthesized_expression', 'typed_expression', 'unary_typed_expression'}

# Clauses of a try statement that open their own scope
TRY_CLAUSES = {'catch_clause', 'else_clause', 'finally_clause'}


def is_wildcard(name: str) -> bool:
    """Identifiers made only of underscores can be assigned but never read."""
    return bool(name) and set(name) == {'_'}


class ScopeExplorer:
    """Single-use visitor that builds one AnalysisResult.

    Dispatch goes through HANDLERS (node kind -> method name). Kinds that are
    not listed fall back to visiting their named children, so identifiers
    under grammar constructs we do not know about still count as usages.
    """

    HANDLERS = {
        'identifier': '_visit_identifier',
        'macro_identifier': '_visit_macro_identifier',
        'operator': '_skip',
        'line_comment': '_skip',
        'block_comment': '_skip',
        'ERROR': '_skip',
        'export_statement': '_skip',
        'public_statement': '_skip',
        'assignment': '_visit_assignment',
        'compound_assignment_expression': '_visit_compound_assignment',
        'global_statement': '_visit_global',
        'local_statement': '_visit_local',
        'field_expression': '_visit_field',
        'named_argument': '_visit_named_value',
        'named_field': '_visit_named_value',
        'argument_list': '_visit_argument_list',
        'parenthesized_expression': '_visit_argument_list',
        'comprehension_expression': '_visit_generator',
        'function_definition': '_visit_function_definition',
        'macro_definition': '_visit_function_definition',
        'arrow_function_expression': '_visit_arrow_function',
        'do_clause': '_visit_do_clause',
        'where_expression': '_visit_where',
        'let_statement': '_visit_let',
        'for_statement': '_visit_for',
        'while_statement': '_visit_while',
        'try_statement': '_visit_try',
        'catch_clause': '_visit_catch',
        'finally_clause': '_visit_finally',
        'struct_definition': '_visit_type_definition',
        'abstract_definition': '_visit_type_definition',
        'primitive_definition': '_visit_type_definition',
        'module_definition': '_visit_module',
        'import_statement': '_visit_import',
        'using_statement': '_visit_import',
        'quote_expression': '_visit_quoted',
        'quote_statement': '_visit_quoted',
        'prefixed_string_literal': '_visit_prefixed_literal',
        'prefixed_command_literal': '_visit_prefixed_literal',
    }

    def __init__(self, document: Document, enclosing_scope: Optional[ScopeStack] = None):
        self.document = document
        # Copied so bindings made here never leak into the caller's frames
        self.scope = enclosing_scope.copy() if enclosing_scope is not None else ScopeStack()
        self.result = AnalysisResult()

    def explore(self, root: Node, quoted: bool = False) -> AnalysisResult:
        if quoted:
            self._visit_quoted(root)
        else:
            self.visit(root)
        return self.result

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def visit(self, node: Node) -> None:
        if node.is_missing:
            return
        handler = getattr(self, self.HANDLERS.get(node.type, '_visit_children'))
        handler(node)

    def _visit_children(self, node: Node) -> None:
        for child in node.named_children:
            self.visit(child)

    def _skip(self, node: Node) -> None:
        pass

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _text(self, node: Node) -> str:
        return self.document.node_text(node)

    def _read(self, node: Node, name: Optional[str] = None) -> None:
        name = name if name is not None else self._text(node)
        if not name or is_wildcard(name):
            return
        occurrence = Occurrence(name, node.start_byte, node.end_byte)
        self.result.usages.append(occurrence)
        if not self.scope.is_bound(name):
            self.result.free_usages.append(occurrence)

    def _define(self, node: Node, kind: DefinitionKind, name: Optional[str] = None) -> None:
        name = name if name is not None else self._text(node)
        if not name or is_wildcard(name):
            return
        self.result.definitions[name] = Definition(name, node.start_byte, node.end_byte, kind)

    def _record_local(self, node: Node, name: str) -> None:
        self.result.locals.append(Occurrence(name, node.start_byte, node.end_byte))

    def _bind(self, node: Node, kind: DefinitionKind = DefinitionKind.ASSIGNMENT,
              name: Optional[str] = None) -> None:
        """Assignment semantics: local inside a scope, global at top level."""
        name = name if name is not None else self._text(node)
        if not name or is_wildcard(name):
            return
        if self.scope.active and not self.scope.is_global(name):
            # Reassigning an existing local is not a new binding
            already_bound = self.scope.is_bound(name)
            self.scope.bind(name)
            if not already_bound:
                self._record_local(node, name)
        else:
            self._define(node, kind, name)

    def _bind_local(self, node: Node, name: Optional[str] = None) -> None:
        """A fresh local: parameters, let/for binders, `local x`."""
        name = name if name is not None else self._text(node)
        if not name or is_wildcard(name):
            return
        self.scope.bind_new(name)
        self._record_local(node, name)

    def _bind_global(self, node: Node) -> None:
        name = self._text(node)
        if not name or is_wildcard(name):
            return
        self.scope.declare_global(name)
        self._define(node, DefinitionKind.ASSIGNMENT, name)

    def _declare_global(self, node: Node) -> None:
        name = self._text(node)
        if name and not is_wildcard(name):
            self.scope.declare_global(name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _split_at_operator(node: Node) -> Tuple[List[Node], List[Node], bool]:
        """Named children before and after the first `operator` child."""
        before, after, found = [], [], False
        for child in node.named_children:
            if not found and child.type == 'operator':
                found = True
                continue
            (after if found else before).append(child)
        return before, after, found

    def _same_statement(self, start: int, end: int) -> bool:
        """Whether the source between two nodes keeps them in one header.

        The grammar hides `;` and newline terminators, so the gap text
        decides where a `let`/`catch` header ends and the body begins.
        """
        gap = self.document.slice_string(start, end)
        if ',' in gap:
            return True
        return ';' not in gap and '\n' not in gap

    @staticmethod
    def _is_function_signature(node: Node) -> bool:
        while node.type in ('where_expression', 'typed_expression'):
            if not node.named_children:
                return False
            node = node.named_children[0]
        return node.type == 'call_expression'

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _visit_identifier(self, node: Node) -> None:
        self._read(node)

    def _visit_macro_identifier(self, node: Node) -> None:
        self._read(node, self._text(node).strip())

    def _visit_field(self, node: Node) -> None:
        # `a.b` reads `a`; `b` is a field label
        value = node.child_by_field_name('value')
        if value is None and node.named_children:
            value = node.named_children[0]
        if value is not None:
            self.visit(value)

    def _visit_named_value(self, node: Node) -> None:
        # `f(key=value)` and `(key=value,)`: only the value is evaluated
        before, after, found = self._split_at_operator(node)
        values = after if found else before[1:]
        for child in values:
            self.visit(child)

    def _visit_argument_list(self, node: Node) -> None:
        if any(child.type == 'for_clause' for child in node.named_children):
            self._visit_generator(node)
        else:
            self._visit_children(node)

    def _visit_prefixed_literal(self, node: Node) -> None:
        # r"..." expands to @r_str, `...`-commands to @..._cmd
        prefix = node.child_by_field_name('prefix')
        if prefix is None:
            return
        suffix = 'cmd' if node.type == 'prefixed_command_literal' else 'str'
        self._read(prefix, f"@{self._text(prefix)}_{suffix}")

    def _visit_quoted(self, node: Node) -> None:
        """Nothing under a quote is evaluated, except `$` interpolations."""
        for child in node.named_children:
            if child.type == 'interpolation_expression':
                self._visit_children(child)
            else:
                self._visit_quoted(child)

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def _assign(self, target: Node, binder: Callable[[Node], None]) -> None:
        """Bind the names on an assignment's left-hand side."""
        kind = target.type
        if kind == 'identifier':
            binder(target)
        elif kind in ('open_tuple', 'tuple_expression', 'parenthesized_expression', 'splat_expression'):
            for child in target.named_children:
                self._assign(child, binder)
        elif kind == 'typed_expression':
            parts = target.named_children
            if parts:
                self._assign(parts[0], binder)
                for annotation in parts[1:]:
                    self.visit(annotation)
        elif kind == 'parametrized_type_expression':
            # `A{T} = ...`: the curly parameters are binders, not reads
            parts = target.named_children
            if parts and parts[0].type == 'identifier':
                binder(parts[0])
            elif parts:
                self.visit(parts[0])
        else:
            # index_expression, field_expression, ... mutate without binding
            self.visit(target)

    def _visit_assignment(self, node: Node) -> None:
        before, after, _ = self._split_at_operator(node)
        if not before:
            self._visit_children(node)
            return
        target = before[0]
        if self._is_function_signature(target):
            self._visit_function(target, after, DefinitionKind.FUNCTION)
            return
        for child in after:
            self.visit(child)
        self._assign(target, self._bind)

    def _visit_compound_assignment(self, node: Node) -> None:
        # `x op= e` is `x = x op e`; broadcasting `x .op= e` mutates `x` in place
        before, after, _ = self._split_at_operator(node)
        for child in after:
            self.visit(child)
        if not before:
            return
        target = before[0]
        operator = next((c for c in node.named_children if c.type == 'operator'), None)
        if operator is not None and self._text(operator).startswith('.'):
            self.visit(target)
        elif target.type == 'identifier':
            self._read(target)
            self._bind(target)
        else:
            self.visit(target)

    def _visit_global(self, node: Node) -> None:
        for child in node.named_children:
            if child.type == 'assignment':
                before, after, _ = self._split_at_operator(child)
                if before and self._is_function_signature(before[0]):
                    name = self._signature_call(before[0])
                    if name is not None and name.type == 'identifier':
                        self._declare_global(name)
                    self.visit(child)
                    continue
                for value in after:
                    self.visit(value)
                if before:
                    self._assign(before[0], self._bind_global)
            else:
                self._assign(child, self._declare_global)

    def _visit_local(self, node: Node) -> None:
        for child in node.named_children:
            if child.type == 'function_definition':
                self._visit_function_definition(child, fresh=True)
            elif child.type == 'assignment':
                before, after, _ = self._split_at_operator(child)
                if before and self._is_function_signature(before[0]):
                    self._visit_function(before[0], after, DefinitionKind.FUNCTION, fresh=True)
                    continue
                for value in after:
                    self.visit(value)
                if before:
                    self._assign(before[0], self._bind_local)
            else:
                self._assign(child, self._bind_local)

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    @staticmethod
    def _signature_call(signature: Node) -> Optional[Node]:
        """The callee of a signature such as `f(x)::T where T`."""
        node = signature
        while node.type in ('where_expression', 'typed_expression') and node.named_children:
            node = node.named_children[0]
        if node.type == 'call_expression' and node.named_children:
            return node.named_children[0]
        return None

    def _visit_function_definition(self, node: Node, fresh: bool = False) -> None:
        signature = None
        body = []
        for child in node.named_children:
            if child.type == 'signature' and signature is None:
                signature = child
            else:
                body.append(child)
        kind = DefinitionKind.MACRO if node.type == 'macro_definition' else DefinitionKind.FUNCTION
        if signature is None or not signature.named_children:
            with self.scope.frame(kind.value):
                for child in body:
                    self.visit(child)
            return
        self._visit_function(signature.named_children[0], body, kind, fresh)

    def _visit_function(self, signature: Node, body: List[Node], kind: DefinitionKind,
                        fresh: bool = False) -> None:
        """Bind a function's name, then its parameters in a new frame.

        Args:
            signature: Call, where or typed expression heading the method
            body: Statements (or the right-hand side) evaluated in the frame
            kind: FUNCTION or MACRO
            fresh: Bind the name as a new local (`local f(x) = ...`, let headers)
        """
        where_clauses: List[Node] = []
        return_types: List[Node] = []
        node = signature
        while node.type in ('where_expression', 'typed_expression') and node.named_children:
            parts = node.named_children
            if node.type == 'where_expression':
                where_clauses.extend(parts[1:])
            else:
                return_types.extend(parts[1:])
            node = parts[0]

        parameters = None
        functor = None
        if node.type == 'call_expression':
            parts = node.named_children
            if parts and parts[0].type in FUNCTOR_CALLEES:
                # `(p::P)(x) = ...` adds a method to P; `p` is bound like a parameter
                functor = parts[0]
            elif parts:
                self._define_function_name(parts[0], kind, fresh)
            parameters = next((c for c in parts[1:] if c.type == 'argument_list'), None)
        elif node.type in PARAMETER_LISTS:
            parameters = node
        else:
            # `function f end`
            self._define_function_name(node, kind, fresh)

        with self.scope.frame(kind.value):
            for clause in where_clauses:
                self._bind_type_parameters(clause)
            for annotation in return_types:
                self.visit(annotation)
            if functor is not None:
                self._bind_parameter(functor)
            if parameters is not None:
                self._bind_parameters(parameters)
            for child in body:
                self.visit(child)

    def _define_function_name(self, node: Node, kind: DefinitionKind, fresh: bool = False) -> None:
        def bind(target: Node, name: Optional[str] = None) -> None:
            if fresh:
                self._bind_local(target, name)
            else:
                self._bind(target, kind, name)

        if node.type == 'identifier':
            name = self._text(node)
            if kind == DefinitionKind.MACRO:
                name = f"@{name}"
            bind(node, name)
        elif node.type == 'operator':
            bind(node)
        elif node.type == 'parametrized_type_expression':
            # Constructor with explicit parameters: `Point{T}(x) where T`
            parts = node.named_children
            if parts and parts[0].type == 'identifier':
                bind(parts[0])
        else:
            # `Base.show(io, x) = ...` extends a function owned elsewhere
            self.visit(node)

    def _bind_parameters(self, parameters: Node) -> None:
        for child in parameters.named_children:
            self._bind_parameter(child)

    def _bind_parameter(self, node: Node) -> None:
        kind = node.type
        if kind == 'identifier':
            self._bind_local(node)
        elif kind in ('typed_expression', 'tuple_expression', 'parenthesized_expression'):
            self._assign(node, self._bind_local)
        elif kind == 'named_argument':
            # Defaults are evaluated before their own parameter exists
            before, after, found = self._split_at_operator(node)
            labels, values = (before, after) if found else (before[:1], before[1:])
            for value in values:
                self.visit(value)
            for label in labels:
                self._bind_parameter(label)
        elif kind == 'splat_expression':
            for child in node.named_children:
                self._bind_parameter(child)
        else:
            # `::Type{T}` dispatch-only arguments and anything unexpected
            self.visit(node)

    def _bind_type_parameters(self, clause: Node) -> None:
        kind = clause.type
        if kind == 'identifier':
            self._bind_local(clause)
        elif kind == 'curly_expression':
            for child in clause.named_children:
                self._bind_type_parameters(child)
        elif kind == 'binary_expression':
            # `T <: Real`: T is bound, the bound is read
            parts = clause.named_children
            if parts and parts[0].type == 'identifier':
                self._bind_local(parts[0])
                parts = parts[1:]
            for part in parts:
                self.visit(part)
        else:
            self.visit(clause)

    def _visit_arrow_function(self, node: Node) -> None:
        parts = node.named_children
        if not parts:
            return
        with self.scope.frame('lambda'):
            parameters = parts[0]
            if parameters.type in PARAMETER_LISTS:
                self._bind_parameters(parameters)
            else:
                self._bind_parameter(parameters)
            for child in parts[1:]:
                self.visit(child)

    def _visit_do_clause(self, node: Node) -> None:
        parts = node.named_children
        with self.scope.frame('do'):
            if parts and parts[0].type == 'argument_list':
                self._bind_parameters(parts[0])
                parts = parts[1:]
            for child in parts:
                self.visit(child)

    def _visit_where(self, node: Node) -> None:
        parts = node.named_children
        if not parts:
            return
        with self.scope.frame('where'):
            for clause in parts[1:]:
                self._bind_type_parameters(clause)
            self.visit(parts[0])

    # ------------------------------------------------------------------
    # Blocks that open a scope
    # ------------------------------------------------------------------

    def _visit_let(self, node: Node) -> None:
        with self.scope.frame('let'):
            in_header = True
            previous_end = node.children[0].end_byte if node.children else node.start_byte
            for child in node.named_children:
                if in_header and not self._same_statement(previous_end, child.start_byte):
                    in_header = False
                if in_header and child.type in ('let_binding', 'identifier', 'typed_expression'):
                    self._visit_let_binding(child)
                else:
                    in_header = False
                    self.visit(child)
                previous_end = child.end_byte

    def _visit_let_binding(self, node: Node) -> None:
        if node.type != 'let_binding':
            self._assign(node, self._bind_local)
            return
        before, after, found = self._split_at_operator(node)
        if before and self._is_function_signature(before[0]):
            # `let f(x) = x`: a local method, not a read of `f`
            self._visit_function(before[0], after, DefinitionKind.FUNCTION, fresh=True)
            return
        # Right-hand sides see the binders to their left, not their own
        for value in after:
            self.visit(value)
        for target in before:
            self._assign(target, self._bind_local)

    def _visit_for_binding(self, node: Node, iterable_visited: bool = False) -> None:
        before, after, _ = self._split_at_operator(node)
        if not iterable_visited:
            for iterable in after:
                self.visit(iterable)
        for target in before:
            self._assign(target, self._bind_local)

    def _visit_outer_iterable(self, binding: Optional[Node]) -> None:
        """The first iterable is evaluated before the loop's frame exists."""
        if binding is None:
            return
        _, after, _ = self._split_at_operator(binding)
        for iterable in after:
            self.visit(iterable)

    def _visit_for(self, node: Node) -> None:
        first = next((c for c in node.named_children if c.type == 'for_binding'), None)
        self._visit_outer_iterable(first)
        with self.scope.frame('for'):
            for child in node.named_children:
                if child.type == 'for_binding':
                    self._visit_for_binding(child, iterable_visited=child == first)
                else:
                    self.visit(child)

    def _visit_generator(self, node: Node) -> None:
        """Comprehensions and generators: `[body for x in xs if cond]`."""
        children = node.named_children
        bindings = [binding for clause in children if clause.type == 'for_clause'
                    for binding in clause.named_children]
        first = next((b for b in bindings if b.type == 'for_binding'), None)
        self._visit_outer_iterable(first)
        with self.scope.frame('comprehension'):
            for binding in bindings:
                if binding.type == 'for_binding':
                    self._visit_for_binding(binding, iterable_visited=binding == first)
                else:
                    self.visit(binding)
            for clause in children:
                if clause.type == 'if_clause':
                    self._visit_children(clause)
            for child in children:
                if child.type not in ('for_clause', 'if_clause'):
                    self.visit(child)

    def _visit_while(self, node: Node) -> None:
        condition = node.child_by_field_name('condition')
        if condition is not None:
            self.visit(condition)
        with self.scope.frame('while'):
            for child in node.named_children:
                if condition is not None and child == condition:
                    continue
                self.visit(child)

    def _visit_try(self, node: Node) -> None:
        clauses = []
        with self.scope.frame('try'):
            for child in node.named_children:
                if child.type in TRY_CLAUSES:
                    clauses.append(child)
                else:
                    self.visit(child)
        for clause in clauses:
            self.visit(clause)

    def _visit_catch(self, node: Node) -> None:
        keyword_end = node.children[0].end_byte if node.children else node.start_byte
        with self.scope.frame('catch'):
            for index, child in enumerate(node.named_children):
                if (index == 0 and child.type == 'identifier'
                        and self._same_statement(keyword_end, child.start_byte)):
                    self._bind_local(child)
                else:
                    self.visit(child)

    def _visit_finally(self, node: Node) -> None:
        with self.scope.frame('finally'):
            self._visit_children(node)

    # ------------------------------------------------------------------
    # Global declarations
    # ------------------------------------------------------------------

    def _type_name(self, node: Node) -> Optional[Node]:
        if node.type == 'identifier':
            return node
        if node.type in ('binary_expression', 'parametrized_type_expression') and node.named_children:
            return self._type_name(node.named_children[0])
        return None

    def _visit_type_definition(self, node: Node) -> None:
        # Only the declared name matters; supertypes and fields stay unread
        head = next((c for c in node.named_children if c.type == 'type_head'), None)
        if head is None or not head.named_children:
            return
        name = self._type_name(head.named_children[0])
        if name is not None:
            self._define(name, TYPE_DEFINITIONS[node.type])

    def _visit_module(self, node: Node) -> None:
        name = node.child_by_field_name('name')
        if name is not None and name.type == 'identifier':
            self._define(name, DefinitionKind.MODULE)

    def _imported_leaves(self, node: Node) -> List[Node]:
        kind = node.type
        if kind in ('identifier', 'operator', 'macro_identifier'):
            return [node]
        if kind in ('scoped_identifier', 'import_path', 'import_alias'):
            parts = node.named_children
            return self._imported_leaves(parts[-1]) if parts else []
        if kind == 'selected_import':
            # `import A.B: x, y as z`; the module path itself is not bound
            leaves = []
            for part in node.named_children[1:]:
                leaves.extend(self._imported_leaves(part))
            return leaves
        return []

    def _visit_import(self, node: Node) -> None:
        for child in node.named_children:
            for leaf in self._imported_leaves(child):
                self._define(leaf, DefinitionKind.IMPORT, self._text(leaf).strip())


def explore_variable_usage(cursor, document, enclosing_scope: Optional[ScopeStack] = None,
                           quoted: bool = False) -> AnalysisResult:
    """Classify every identifier under the cursor's current node.

    Args:
        cursor: tree-sitter TreeCursor (or Node) positioned on the subtree
        document: Document (or raw source) the tree was parsed from
        enclosing_scope: Frames of an outer construct already being analyzed
        quoted: The subtree sits inside a quotation and is not evaluated

    Returns:
        AnalysisResult with locals, usages, definitions and free usages

    Raises:
        ValueError: If cursor or document is missing, or the document is
            shorter than the tree it supposedly produced
    """
    if cursor is None:
        raise ValueError("explore_variable_usage requires a cursor or node")
    if document is None:
        raise ValueError("explore_variable_usage requires a document")
    if not isinstance(document, Document):
        document = Document(document)

    root = cursor.node if hasattr(cursor, 'goto_first_child') else cursor
    if root is None:
        raise ValueError("Cursor is not positioned on a node")
    if root.end_byte > len(document):
        raise ValueError(
            f"Document does not match the syntax tree: tree ends at byte "
            f"{root.end_byte}, document has {len(document)} bytes"
        )

    return ScopeExplorer(document, enclosing_scope).explore(root, quoted=quoted)
