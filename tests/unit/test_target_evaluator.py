"""
Tests for target tree evaluation.
"""

from lxml import html

from pagewatch.extraction.target_evaluator import TargetEvaluator
from pagewatch.models import VALUE_KEY, ExtractionRule, TargetNode


def leaf(name: str, path: str) -> TargetNode:
    return TargetNode(name=name, path=path, extract=ExtractionRule.TEXT)


class TestTargetEvaluator:
    """Tests for TargetEvaluator."""

    def test_product_record(self, catalog_pages, product_targets) -> None:
        root = html.document_fromstring(catalog_pages["https://shop.example.com/p1"])

        record = TargetEvaluator().evaluate_record(product_targets, root)

        assert record == {
            "Product": [
                {"Name": ["Widget"], "Price": ["9.99"]},
                {"Name": ["Gadget"], "Price": ["19.99"]},
            ]
        }

    def test_leaf_values_in_document_order(self, sample_html_article) -> None:
        root = html.document_fromstring(sample_html_article)
        values = TargetEvaluator().evaluate(leaf("Paragraph", "//div[@class='content']/p"), root)
        assert values == ["First paragraph.", "Second bold paragraph.", "Third paragraph."]

    def test_attribute_values(self, sample_html_article) -> None:
        root = html.document_fromstring(sample_html_article)
        values = TargetEvaluator().evaluate(leaf("Date", "//time/@datetime"), root)
        assert values == ["2025-01-15"]

    def test_empty_match_does_not_affect_siblings(self, sample_html_article) -> None:
        root = html.document_fromstring(sample_html_article)
        tree = TargetNode(
            name="Article",
            path="//article",
            then={
                "Title": leaf("Title", "h1"),
                "Subtitle": leaf("Subtitle", "h2"),
                "Author": leaf("Author", ".//span[@class='author']"),
            },
        )

        record = TargetEvaluator().evaluate_record(tree, root)

        assert record == {
            "Article": [
                {
                    "Title": ["Sample Article Title"],
                    "Subtitle": [],
                    "Author": ["John Doe"],
                }
            ]
        }

    def test_root_without_match(self, sample_html_article) -> None:
        root = html.document_fromstring(sample_html_article)
        record = TargetEvaluator().evaluate_record(leaf("Table", "//table"), root)
        assert record == {"Table": []}

    def test_children_keep_configuration_order(self, catalog_pages, product_targets) -> None:
        root = html.document_fromstring(catalog_pages["https://shop.example.com/p1"])
        record = TargetEvaluator().evaluate_record(product_targets, root)
        assert list(record["Product"][0]) == ["Name", "Price"]

    def test_extract_and_then(self, sample_html_article) -> None:
        root = html.document_fromstring(sample_html_article)
        tree = TargetNode(
            name="Meta",
            path="//div[@class='meta']",
            extract=ExtractionRule.TEXT,
            then={"Author": leaf("Author", "span")},
        )

        [entry] = TargetEvaluator().evaluate(tree, root)

        assert entry["Author"] == ["John Doe"]
        assert "John Doe" in entry[VALUE_KEY][0]
        assert "January 15, 2025" in entry[VALUE_KEY][0]

    def test_inert_target_yields_empty_records(self, catalog_pages) -> None:
        root = html.document_fromstring(catalog_pages["https://shop.example.com/p1"])
        tree = TargetNode(name="Product", path="//li")
        assert TargetEvaluator().evaluate(tree, root) == [{}, {}]

    def test_nested_groups(self) -> None:
        root = html.document_fromstring(
            """
            <html><body>
                <section><h2>A</h2><p>a1</p><p>a2</p></section>
                <section><h2>B</h2></section>
            </body></html>
            """
        )
        tree = TargetNode(
            name="Section",
            path="//section",
            then={
                "Heading": leaf("Heading", "h2"),
                "Body": TargetNode(
                    name="Body",
                    path="self::section",
                    then={"Paragraph": leaf("Paragraph", "p")},
                ),
            },
        )

        record = TargetEvaluator().evaluate_record(tree, root)

        assert record == {
            "Section": [
                {"Heading": ["A"], "Body": [{"Paragraph": ["a1", "a2"]}]},
                {"Heading": ["B"], "Body": [{"Paragraph": []}]},
            ]
        }

    def test_evaluation_is_deterministic(self, catalog_pages, product_targets) -> None:
        evaluator = TargetEvaluator()
        root = html.document_fromstring(catalog_pages["https://shop.example.com/p2"])
        first = evaluator.evaluate_record(product_targets, root)
        second = evaluator.evaluate_record(product_targets, root)
        assert first == second

    def test_failing_expression_yields_empty_list(self, catalog_pages) -> None:
        root = html.document_fromstring(catalog_pages["https://shop.example.com/p1"])
        tree = TargetNode(
            name="Product",
            path="//li",
            then={"Bad": leaf("Bad", "ns:span"), "Good": leaf("Good", "span[1]")},
        )

        records = TargetEvaluator().evaluate(tree, root)

        assert records[0] == {"Bad": [], "Good": ["Widget"]}

    def test_group_over_attribute_matches(self) -> None:
        root = html.document_fromstring(
            "<html><body><a href='/a'>A</a><a href='/b'>B</a></body></html>"
        )
        tree = TargetNode(
            name="Links",
            path="//a/@href",
            then={"Self": leaf("Self", ".")},
        )

        record = TargetEvaluator().evaluate_record(tree, root)

        assert record == {"Links": [{"Self": []}, {"Self": []}]}

    def test_group_over_text_matches_keeps_value(self) -> None:
        root = html.document_fromstring("<html><body><p>one</p><p>two</p></body></html>")
        tree = TargetNode(
            name="Text",
            path="//p/text()",
            extract=ExtractionRule.TEXT,
            then={"Bold": leaf("Bold", "b")},
        )

        records = TargetEvaluator().evaluate(tree, root)

        assert records == [
            {VALUE_KEY: ["one"], "Bold": []},
            {VALUE_KEY: ["two"], "Bold": []},
        ]
