"""
Query optimization module for boolean search.

Every rewrite here preserves the result set: complements are taken against
the index universe and every subquery result is a subset of it, so De Morgan
and double negation elimination are exact.

AND/OR chains are handled as operand lists (see parser.chain_operands), so a
query with thousands of operands is rewritten in a loop rather than one
Python frame per operator.
"""

from .parser import TermNode, AndNode, OrNode, NotNode, BinaryNode, chain_operands, fold_chain

DUAL = {AndNode: OrNode, OrNode: AndNode}


def apply_de_morgan(node):
    """Push NOT operators down to the terms and drop double negations."""
    if isinstance(node, NotNode):
        child = node.child
        if isinstance(child, BinaryNode):
            # NOT (A AND B AND ...) => NOT A OR NOT B OR ...
            # NOT (A OR B OR ...) => NOT A AND NOT B AND ...
            return fold_chain(DUAL[type(child)],
                              [apply_de_morgan(NotNode(operand)) for operand in chain_operands(child)])
        if isinstance(child, NotNode):
            return apply_de_morgan(child.child)
        return node

    if isinstance(node, BinaryNode):
        return fold_chain(type(node), [apply_de_morgan(operand) for operand in chain_operands(node)])

    return node


def estimate_size(node, index):
    """
    Estimate the result size of a node

    Args:
        node: AST node to evaluate
        index: InvertedIndex

    Returns:
        Estimated number of matching documents
    """
    return _reorder(node, index)[1]


def _reorder(node, index):
    """Reordered copy of node together with its estimated result size."""
    universe_size = len(index.universe)

    if isinstance(node, TermNode):
        return node, len(index.lookup(node.value))

    if isinstance(node, NotNode):
        child, child_size = _reorder(node.child, index)
        return NotNode(child), max(0, universe_size - child_size)

    if isinstance(node, BinaryNode):
        estimated = [_reorder(operand, index) for operand in chain_operands(node)]
        # stable sort keeps the written order among equal estimates
        estimated.sort(key=lambda pair: pair[1])
        sizes = [size for _, size in estimated]

        if isinstance(node, AndNode):
            size = sizes[0]
        else:
            size = min(sum(sizes), universe_size)
        return fold_chain(type(node), [operand for operand, _ in estimated]), size

    return node, universe_size


def reorder_query_ast(node, index):
    """
    Reorder AND/OR operands so the smaller estimated ones are evaluated first.
    AND evaluation stops at the first empty intermediate result, so this pays
    off for AND.

    Args:
        node: Root node of the AST
        index: InvertedIndex

    Returns:
        Reordered AST (a new tree, the input is left untouched)
    """
    return _reorder(node, index)[0]


def optimize_query(node, index):
    if node is None:
        return None
    return reorder_query_ast(apply_de_morgan(node), index)
