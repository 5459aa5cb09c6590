import unittest

from ebook_resolver.extractor.links import LinkSelector, extract_links, parse_anchors

PAGE = """
<html><body>
  <a href="https://cdn.example.org/a.epub">first epub</a>
  <a href="/get.php?md5=abc&key=1">GET</a>
  <a href="https://cdn.example.org/b.epub">second epub</a>
  <a href="http://hidden.onion/get.php?md5=abc">GET</a>
  <a href="mailto:someone@example.org">mail</a>
  <a>no href</a>
</body></html>
"""


class TestExtractLinks(unittest.TestCase):
    def test_first_matching_selector_wins(self):
        selectors = [
            LinkSelector(attribute_pattern=r"/get\.php"),
            LinkSelector(attribute_pattern=r"\.epub$"),
        ]
        links = extract_links(PAGE, selectors, base_url="https://libgen.li/ads.php")
        self.assertEqual(links, ["https://libgen.li/get.php?md5=abc&key=1"])

    def test_selectors_are_not_merged(self):
        selectors = [
            LinkSelector(attribute_pattern=r"\.epub$"),
            LinkSelector(attribute_pattern=r"/get\.php"),
        ]
        links = extract_links(PAGE, selectors)
        self.assertEqual(
            links,
            ["https://cdn.example.org/a.epub", "https://cdn.example.org/b.epub"],
        )

    def test_skips_selector_with_no_hits(self):
        selectors = [
            LinkSelector(attribute_pattern=r"annas-archive"),
            LinkSelector(text_pattern=r"^second"),
        ]
        self.assertEqual(extract_links(PAGE, selectors), ["https://cdn.example.org/b.epub"])

    def test_text_and_attribute_must_both_match(self):
        selector = LinkSelector(attribute_pattern=r"get\.php", text_pattern=r"^GET$")
        links = extract_links(PAGE, [selector], base_url="https://libgen.li/")
        # onion link matches both patterns but is dropped
        self.assertEqual(links, ["https://libgen.li/get.php?md5=abc&key=1"])

    def test_relative_links_without_base_are_dropped(self):
        selector = LinkSelector(attribute_pattern=r"/get\.php")
        self.assertEqual(extract_links(PAGE, [selector]), [])

    def test_no_match_and_empty_html(self):
        self.assertEqual(extract_links(PAGE, [LinkSelector(attribute_pattern="nothing")]), [])
        self.assertEqual(extract_links("", [LinkSelector()]), [])

    def test_parse_anchors_keeps_document_order(self):
        anchors = parse_anchors(PAGE)
        self.assertEqual(anchors[0], ("https://cdn.example.org/a.epub", "first epub"))
        self.assertEqual(len(anchors), 5)


if __name__ == "__main__":
    unittest.main()
