import unittest

from pydantic import TypeAdapter, ValidationError

from ebook_resolver.models import (
    DeclaredSource,
    Failed,
    FailureReason,
    ResolutionOutcome,
    ResolutionRequest,
    ResolvedBytes,
    ResolvedUrl,
    parse_declared_source,
)

MD5 = "0123456789ABCDEF0123456789ABCDEF"


class TestResolutionRequest(unittest.TestCase):
    def test_from_payload(self):
        request = ResolutionRequest.from_payload({
            "entryUrl": "https://libgen.li/file.php?md5=abc",
            "declaredSource": "libgen",
            "fileHash": MD5,
            "mirrorBaseUrl": "https://libgen.li",
        })

        self.assertEqual(request.entry_url, "https://libgen.li/file.php?md5=abc")
        self.assertEqual(request.declared_source, DeclaredSource.AGGREGATOR)
        self.assertEqual(request.hints.file_hash, MD5.lower())
        self.assertEqual(request.hints.mirror_base_url, "https://libgen.li")

    def test_defaults_to_aggregator(self):
        request = ResolutionRequest(entry_url="https://libgen.li/file.php?md5=abc")
        self.assertEqual(request.declared_source, DeclaredSource.AGGREGATOR)
        self.assertIsNone(request.hints.file_hash)

    def test_catalog_names_map_to_sources(self):
        self.assertEqual(parse_declared_source("Gutenberg"), DeclaredSource.TRUSTED_ARCHIVE)
        self.assertEqual(parse_declared_source("trustedArchive"), DeclaredSource.TRUSTED_ARCHIVE)
        self.assertEqual(parse_declared_source(" libgen "), DeclaredSource.AGGREGATOR)

    def test_unknown_source_is_rejected(self):
        with self.assertRaises(ValidationError):
            ResolutionRequest(entry_url="https://example.com/", declared_source="torrent")

    def test_empty_entry_url_is_rejected(self):
        with self.assertRaises(ValidationError):
            ResolutionRequest.from_payload({"declaredSource": "libgen"})

    def test_request_is_immutable(self):
        request = ResolutionRequest(entry_url="https://example.com/")
        with self.assertRaises(ValidationError):
            request.entry_url = "https://other.example.com/"


class TestOutcomes(unittest.TestCase):
    def test_resolved_url_payload(self):
        outcome = ResolvedUrl(url="https://library.lol/main/abc")
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.to_payload(), {"url": "https://library.lol/main/abc"})

    def test_resolved_bytes_payload(self):
        outcome = ResolvedBytes(data=b"x" * 342, suggested_name="Emma - Jane Austen.epub")
        self.assertEqual(outcome.to_payload(), {
            "suggestedName": "Emma - Jane Austen.epub",
            "size": 342,
            "contentType": "application/epub+zip",
        })
        self.assertNotIn("xxx", repr(outcome))

    def test_unknown_extension_content_type(self):
        outcome = ResolvedBytes(data=b"", suggested_name="download")
        self.assertEqual(outcome.content_type, "application/octet-stream")

    def test_failed_payload(self):
        outcome = Failed(
            reason=FailureReason.BOT_CHALLENGE_UNRESOLVED,
            original_url="https://libgen.li/ads.php?md5=abc",
        )
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.to_payload(), {
            "errorKind": "BotChallengeUnresolved",
            "originalUrl": "https://libgen.li/ads.php?md5=abc",
            "message": "",
        })

    def test_outcome_union_discriminates_on_kind(self):
        adapter = TypeAdapter(ResolutionOutcome)
        outcome = adapter.validate_python({"kind": "failed", "reason": "Timeout"})
        self.assertIsInstance(outcome, Failed)
        self.assertEqual(outcome.reason, FailureReason.TIMEOUT)
        self.assertIsInstance(adapter.validate_python({"kind": "url", "url": "https://x.org/a.pdf"}), ResolvedUrl)


if __name__ == "__main__":
    unittest.main()
