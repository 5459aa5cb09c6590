import json
import unittest

from typer.testing import CliRunner

from ebook_resolver import __version__
from ebook_resolver.cli import _output_name, app
from ebook_resolver.models import ResolvedBytes

runner = CliRunner()


class TestCli(unittest.TestCase):
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    def test_list_mirrors(self):
        result = runner.invoke(app, ["list-mirrors"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("library-lol", result.output)
        self.assertIn("libgen-ads", result.output)

    def test_show_config_all(self):
        result = runner.invoke(app, ["show-config", "--all"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("[browser]", result.output)

    def test_show_config_missing_file(self):
        result = runner.invoke(app, ["show-config", "--config", "/nonexistent/resolver.toml"])
        self.assertEqual(result.exit_code, 1)

    def test_resolve_trusted_source_json(self):
        url = "https://www.gutenberg.org/ebooks/1342.epub"
        result = runner.invoke(app, ["resolve", url, "--source", "gutenberg", "--json"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(result.output), {"url": url})

    def test_resolve_rejects_unknown_source(self):
        result = runner.invoke(app, ["resolve", "https://example.com/", "-s", "torrent"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Invalid request", result.output)


class TestOutputName(unittest.TestCase):
    def test_title_and_author_name_the_file(self):
        outcome = ResolvedBytes(data=b"x", suggested_name="0123abcd.EPUB")
        self.assertEqual(
            _output_name(outcome, "Emma: A Novel", "Jane Austen"),
            "Emma A Novel - Jane Austen.epub",
        )

    def test_missing_author_is_unknown(self):
        outcome = ResolvedBytes(data=b"x", suggested_name="book.pdf")
        self.assertEqual(_output_name(outcome, "Emma", None), "Emma - Unknown.pdf")

    def test_without_title_keeps_suggested_name(self):
        outcome = ResolvedBytes(data=b"x", suggested_name="book.pdf")
        self.assertEqual(_output_name(outcome, None, "Jane Austen"), "book.pdf")
        bare = ResolvedBytes(data=b"x", suggested_name="download")
        self.assertEqual(_output_name(bare, "Emma", None), "download")


if __name__ == "__main__":
    unittest.main()
