"""
Tests for selector evaluation against document trees, including property-based
checks against a brute-force reference matcher.
"""

from typing import List, Tuple

from hypothesis import given, strategies as st

from crawlkit.selector import Attribute, DocumentParser, Node, compile_selector, select


def build_tree() -> Node:
    """
    <div id="outer" class="box">
      <p>one</p>
      <section>
        <p class="lead">two</p>
        <div class="inner"><p>three</p></div>
      </section>
    </div>
    <p>four</p>
    <table id="x" class="y z"></table>
    <table id="x"></table>
    <table class="y"></table>
    """
    return Node.document((
        Node.element("div", {"id": "outer", "class": "box"}, (
            Node.element("p", {}, (Node.text_node("one"),)),
            Node.element("section", {}, (
                Node.element("p", {"class": "lead"}, (Node.text_node("two"),)),
                Node.element("div", {"class": "inner"}, (
                    Node.element("p", {}, (Node.text_node("three"),)),
                )),
            )),
        )),
        Node.element("p", {}, (Node.text_node("four"),)),
        Node.element("table", {"id": "x", "class": "y z"}),
        Node.element("table", {"id": "x"}),
        Node.element("table", {"class": "y"}),
    ))


class TestSelect:
    """Test selector evaluation."""

    def test_descendant_returns_nested_nodes_in_document_order(self):
        root = build_tree()
        texts = [n.get_text() for n in select("div p", root)]
        assert texts == ["one", "two", "three"]

    def test_nested_matches_through_multiple_ancestors_appear_once(self):
        root = build_tree()
        matches = select("div p", root)
        assert len(matches) == len({id(n) for n in matches})

    def test_compound_requires_all_predicates(self):
        root = build_tree()
        matches = select("table#x.y", root)
        assert len(matches) == 1
        assert matches[0].attrs["class"] == "y z"

    def test_class_predicate_matches_one_of_many_classes(self):
        root = build_tree()
        assert len(select(".z", root)) == 1
        assert len(select(".y", root)) == 2

    def test_three_level_chain(self):
        root = build_tree()
        assert [n.get_text() for n in select("div#outer section div.inner p", root)] == ["three"]

    def test_chain_order_matters(self):
        root = build_tree()
        assert select("section div#outer", root) == []

    def test_no_match_returns_empty_list(self):
        assert select("span", build_tree()) == []

    def test_root_itself_can_match(self):
        node = Node.element("p", {"class": "x"})
        assert select("p.x", node) == [node]

    def test_select_on_subtree_only_sees_subtree(self):
        root = build_tree()
        section = select("section", root)[0]
        assert [n.get_text() for n in select("p", section)] == ["two", "three"]
        # ancestors above the subtree root are not considered
        assert select("div#outer p", section) == []

    def test_text_nodes_never_match(self):
        root = Node.document((Node.text_node("p"),))
        assert select("p", root) == []

    def test_selector_object_is_reusable_across_documents(self):
        selector = compile_selector("div p")
        assert len(selector.select(build_tree())) == 3
        assert len(selector.select(build_tree())) == 3


class TestAttribute:
    """Test attribute accessor."""

    def test_present_attribute(self):
        node = Node.element("option", {"value": "1"})
        assert Attribute("value").value(node) == "1"

    def test_absent_attribute_is_empty_string(self):
        node = Node.element("option")
        assert Attribute("value").value(node) == ""

    def test_text_node_has_no_attributes(self):
        assert Attribute("value").value(Node.text_node("x")) == ""

    def test_none_node(self):
        assert Attribute("value").value(None) == ""


class TestEndToEnd:
    """Parse real markup and query it."""

    def test_select_option_value(self):
        html = '<select id="deputado"><option value="1">Jane Doe (PP-SP)</option></select>'
        root = DocumentParser().parse(html)

        matches = select("select#deputado option", root)

        assert len(matches) == 1
        assert Attribute("value").value(matches[0]) == "1"
        assert matches[0].first_child.text == "Jane Doe (PP-SP)"

    def test_nested_query_inside_match(self, costs_html):
        root = DocumentParser().parse(costs_html)
        rows = select("section#cota table#js-tipo-despesa.js-chart--pie tbody tr", root)

        cells = [[td.get_text() for td in select("td", row)] for row in rows]

        assert cells == [["Passagens", "1.234,56"], ["Telefonia", "78,90"]]


# --- property-based tests -------------------------------------------------

TAGS = ["div", "p", "span"]
CLASSES = ["a", "b"]


@st.composite
def element_trees(draw, depth: int = 0) -> Node:
    tag = draw(st.sampled_from(TAGS))
    classes = draw(st.lists(st.sampled_from(CLASSES), max_size=2, unique=True))
    attrs = {"class": " ".join(classes)} if classes else {}
    if draw(st.booleans()):
        attrs["id"] = draw(st.sampled_from(["x", "y"]))
    children: Tuple[Node, ...] = ()
    if depth < 3:
        children = tuple(draw(st.lists(element_trees(depth + 1), max_size=3)))
    return Node.element(tag, attrs, children)


@st.composite
def compound_texts(draw) -> str:
    tag = draw(st.sampled_from(TAGS + [""]))
    ident = draw(st.sampled_from(["", "#x", "#y"]))
    classes = "".join(f".{c}" for c in draw(st.lists(st.sampled_from(CLASSES), max_size=2)))
    text = tag + ident + classes
    return text or draw(st.sampled_from(TAGS))


def reference_select(compounds: List[str], root: Node) -> List[Node]:
    """Brute force: try every assignment of compounds to an ancestor path."""
    single = [compile_selector(c) for c in compounds]
    results = []

    def walk(node: Node, path: List[Node]) -> None:
        full = path + [node]
        if single[-1].matches(node):
            # choose increasing indices for the earlier compounds among ancestors
            def fits(ci: int, start: int) -> bool:
                if ci < 0:
                    return True
                for ai in range(start, -1, -1):
                    if single[ci].matches(full[ai]) and fits(ci - 1, ai - 1):
                        return True
                return False
            if fits(len(single) - 2, len(full) - 2):
                results.append(node)
        for child in node.children:
            walk(child, full)

    walk(root, [])
    return results


class TestSelectorProperties:
    """Property-based tests for selector evaluation."""

    @given(tree=element_trees(), compounds=st.lists(compound_texts(), min_size=1, max_size=3))
    def test_select_agrees_with_brute_force_property(self, tree, compounds):
        selector = compile_selector(" ".join(compounds))
        assert selector.select(tree) == reference_select(compounds, tree)

    @given(tree=element_trees(), compounds=st.lists(compound_texts(), min_size=1, max_size=3))
    def test_results_are_in_document_order_property(self, tree, compounds):
        order = {id(n): i for i, n in enumerate(tree.iter_descendants())}
        positions = [order[id(n)] for n in compile_selector(" ".join(compounds)).select(tree)]
        assert positions == sorted(set(positions))

    @given(tree=element_trees())
    def test_tag_selector_finds_every_tag_property(self, tree):
        for tag in TAGS:
            expected = [n for n in tree.iter_descendants() if n.tag == tag]
            assert select(tag, tree) == expected
