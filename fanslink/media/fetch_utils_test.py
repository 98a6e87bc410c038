import io
import unittest
from unittest.mock import MagicMock, patch

import requests
from PIL import Image

from fanslink.errors import ImageFetchError
from fanslink.media import fetch_utils
from fanslink.types import ImageMetadata, MediaType, VideoMetadata, WebsiteMetadata


def _png(size=(12, 6)):
    buffer = io.BytesIO()
    Image.new("RGB", size).save(buffer, format="PNG")
    return buffer.getvalue()


def _response(content, content_type, url="https://example.com/page"):
    response = MagicMock()
    response.content = content
    response.text = content.decode("utf-8", errors="ignore")
    response.headers = {"Content-Type": content_type}
    response.iter_content.return_value = [content]
    response.url = url
    return response


class FetchImageBytesTest(unittest.TestCase):
    @patch("fanslink.media.fetch_utils.requests.get")
    def test_returns_bytes_and_content_type(self, mock_get):
        mock_get.return_value = _response(_png(), "image/png")
        data, content_type = fetch_utils.fetch_image_bytes("https://img.test/a.png")
        self.assertEqual(content_type, "image/png")
        self.assertEqual(data, _png())
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs["timeout"], fetch_utils.REQUEST_TIMEOUT)
        self.assertEqual(kwargs["headers"]["User-Agent"], fetch_utils.USER_AGENT)

    @patch("fanslink.media.fetch_utils.requests.get")
    def test_sniffs_octet_stream(self, mock_get):
        """Hosts that mislabel images are trusted only if the bytes decode."""
        mock_get.return_value = _response(_png(), "application/octet-stream")
        _, content_type = fetch_utils.fetch_image_bytes("https://img.test/a")
        self.assertEqual(content_type, "image/png")

        mock_get.return_value = _response(b"<html></html>", "text/html")
        with self.assertRaises(ImageFetchError):
            fetch_utils.fetch_image_bytes("https://img.test/page")

    @patch("fanslink.media.fetch_utils.requests.get")
    def test_request_errors(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")
        with self.assertRaises(ImageFetchError):
            fetch_utils.fetch_image_bytes("https://img.test/a.png")

    @patch.object(fetch_utils, "MAX_REMOTE_IMAGE_BYTES", 10)
    @patch("fanslink.media.fetch_utils.requests.get")
    def test_rejects_large_bodies(self, mock_get):
        mock_get.return_value = _response(_png(), "image/png")
        with self.assertRaises(ImageFetchError):
            fetch_utils.fetch_image_bytes("https://img.test/a.png")

    @patch("fanslink.media.fetch_utils.requests.get")
    def test_rejects_declared_length_before_reading(self, mock_get):
        response = _response(_png(), "image/png")
        response.headers["Content-Length"] = str(fetch_utils.MAX_REMOTE_IMAGE_BYTES + 1)
        mock_get.return_value = response
        with self.assertRaises(ImageFetchError):
            fetch_utils.fetch_image_bytes("https://img.test/a.png")
        response.iter_content.assert_not_called()
        response.close.assert_called_once()

    @patch.object(fetch_utils, "MAX_REMOTE_IMAGE_BYTES", 10)
    @patch("fanslink.media.fetch_utils.requests.get")
    def test_stops_reading_oversized_stream(self, mock_get):
        """A body without Content-Length is read only up to the cap."""
        pulled = []

        def chunks(chunk_size):
            for _ in range(1000):
                pulled.append(chunk_size)
                yield b"x" * 4

        response = _response(b"", "image/png")
        response.iter_content.side_effect = chunks
        mock_get.return_value = response
        with self.assertRaises(ImageFetchError):
            fetch_utils.fetch_image_bytes("https://img.test/a.png")
        self.assertEqual(len(pulled), 3)
        _, kwargs = mock_get.call_args
        self.assertTrue(kwargs["stream"])
        response.close.assert_called_once()


class ParseHtmlMetadataTest(unittest.TestCase):
    def test_open_graph_website(self):
        html = """
        <html><head>
          <title>Fallback title</title>
          <meta property="og:title" content="OG title">
          <meta name="description" content="Plain description">
          <meta property="og:image" content="/img/card.png">
          <meta property="og:site_name" content="Example">
          <link rel="shortcut icon" href="/favicon.ico">
        </head></html>
        """
        metadata = fetch_utils.parse_html_metadata(html, "https://example.com/a/b")
        self.assertEqual(metadata.media_type, MediaType.WEBSITE)
        self.assertIsInstance(metadata.details, WebsiteMetadata)
        self.assertEqual(metadata.details.title, "OG title")
        self.assertEqual(metadata.details.description, "Plain description")
        self.assertEqual(metadata.details.image, "https://example.com/img/card.png")
        self.assertEqual(metadata.details.site_name, "Example")
        self.assertEqual(metadata.details.favicon, "https://example.com/favicon.ico")
        self.assertEqual(metadata.details.url, "https://example.com/a/b")

    def test_video(self):
        html = """
        <html><head>
          <meta property="og:type" content="video.other">
          <meta property="og:title" content="Clip">
          <meta property="og:image" content="https://cdn.test/thumb.jpg">
          <meta property="og:video:url" content="https://player.test/embed/1">
        </head></html>
        """
        metadata = fetch_utils.parse_html_metadata(html, "https://video.test/watch")
        self.assertIsInstance(metadata.details, VideoMetadata)
        self.assertEqual(metadata.details.thumbnail, "https://cdn.test/thumb.jpg")
        self.assertEqual(metadata.details.embed_url, "https://player.test/embed/1")
        self.assertEqual(metadata.preview_image, "https://cdn.test/thumb.jpg")


class FetchUrlMetadataTest(unittest.TestCase):
    @patch("fanslink.media.fetch_utils.requests.get")
    def test_image_url(self, mock_get):
        mock_get.return_value = _response(_png((12, 6)), "image/png")
        metadata = fetch_utils.fetch_url_metadata("https://img.test/a.png")
        self.assertIsInstance(metadata.details, ImageMetadata)
        self.assertEqual((metadata.details.width, metadata.details.height), (12, 6))
        self.assertEqual(metadata.details.url, "https://img.test/a.png")

    @patch("fanslink.media.fetch_utils.requests.get")
    def test_other_content(self, mock_get):
        mock_get.return_value = _response(b"%PDF-1.7", "application/pdf")
        metadata = fetch_utils.fetch_url_metadata("https://docs.test/a.pdf")
        self.assertEqual(
            metadata.as_document(),
            {"mediaType": "website", "metadata": {"url": "https://docs.test/a.pdf"}},
        )

    @patch("fanslink.media.fetch_utils.requests.get")
    def test_http_errors_propagate(self, mock_get):
        response = _response(b"", "text/html")
        response.raise_for_status.side_effect = requests.HTTPError("404")
        mock_get.return_value = response
        with self.assertRaises(requests.RequestException):
            fetch_utils.fetch_url_metadata("https://example.com/missing")


if __name__ == "__main__":
    unittest.main()
