import unittest

from fanslink.json_utils import snake_to_camel, strip_none
from fanslink.types import (
    ImageMetadata,
    Link,
    LinkMetadata,
    OpaqueMetadata,
    PublicProfile,
    VideoMetadata,
    WebsiteMetadata,
)


class JsonUtilsTests(unittest.TestCase):
    def test_case_conversion(self):
        self.assertEqual(snake_to_camel("site_name"), "siteName")
        self.assertEqual(snake_to_camel("title"), "title")

    def test_strip_none_is_recursive(self):
        self.assertEqual(
            strip_none({"a": None, "b": {"c": None, "d": 1}, "e": [{"f": None}]}),
            {"b": {"d": 1}, "e": [{}]},
        )


class LinkMetadataTests(unittest.TestCase):
    def test_website_with_unknown_keys(self):
        metadata = LinkMetadata.from_document(
            {
                "mediaType": "website",
                "metadata": {"title": "Home", "siteName": "Site", "themeColor": "#fff"},
            }
        )
        self.assertIsInstance(metadata.details, WebsiteMetadata)
        self.assertEqual(metadata.details.site_name, "Site")
        self.assertEqual(metadata.details.extra, {"themeColor": "#fff"})
        self.assertEqual(
            metadata.as_document(),
            {
                "mediaType": "website",
                "metadata": {"title": "Home", "siteName": "Site", "themeColor": "#fff"},
            },
        )

    def test_image_and_video_variants(self):
        image = LinkMetadata.from_document(
            {"mediaType": "image", "metadata": {"url": "https://x/a.png", "width": 10}}
        )
        self.assertIsInstance(image.details, ImageMetadata)
        self.assertEqual(image.preview_image, "https://x/a.png")

        video = LinkMetadata.from_document(
            {
                "mediaType": "video",
                "metadata": {"thumbnail": "https://x/t.jpg", "embedUrl": "https://x/e"},
            }
        )
        self.assertIsInstance(video.details, VideoMetadata)
        self.assertEqual(video.details.embed_url, "https://x/e")
        self.assertEqual(video.preview_image, "https://x/t.jpg")

    def test_unknown_media_type_is_kept_verbatim(self):
        document = {"mediaType": "podcast", "metadata": {"feed_url": "https://x/rss"}}
        metadata = LinkMetadata.from_document(document)
        self.assertIsInstance(metadata.details, OpaqueMetadata)
        self.assertEqual(metadata.as_document(), document)
        self.assertIsNone(metadata.preview_image)

    def test_only_exact_field_names_are_known(self):
        document = {
            "mediaType": "video",
            "metadata": {"embed_url": "https://x/e", "Title": "T", "title": "Clip"},
        }
        metadata = LinkMetadata.from_document(document)
        self.assertIsNone(metadata.details.embed_url)
        self.assertEqual(metadata.details.title, "Clip")
        self.assertEqual(metadata.details.extra, {"embed_url": "https://x/e", "Title": "T"})
        self.assertEqual(metadata.as_document(), document)

    def test_non_object_metadata_reads_as_empty(self):
        for inner in ("oops", ["a"], 7):
            website = LinkMetadata.from_document({"mediaType": "website", "metadata": inner})
            self.assertEqual(website.as_document(), {"mediaType": "website", "metadata": {}})
            self.assertIsNone(website.preview_image)
            opaque = LinkMetadata.from_document({"mediaType": "podcast", "metadata": inner})
            self.assertEqual(opaque.details.values, {})

    def test_preview_image_must_be_text(self):
        metadata = LinkMetadata.from_document(
            {"mediaType": "website", "metadata": {"image": ["https://x/i.png"]}}
        )
        self.assertIsNone(metadata.preview_image)

    def test_missing_media_type(self):
        metadata = LinkMetadata.from_document({"metadata": {"image": "https://x/i.png"}})
        self.assertEqual(metadata.as_document(), {"metadata": {"image": "https://x/i.png"}})
        self.assertEqual(metadata.preview_image, "https://x/i.png")


class LinkTests(unittest.TestCase):
    def test_defaults_from_sparse_document(self):
        link = Link.from_document({"id": 4, "title": "T", "link": "https://x"})
        self.assertFalse(link.active)
        self.assertIsNone(link.metadata)
        self.assertEqual(link.layout, "classic")
        self.assertEqual(
            link.as_document(),
            {
                "id": 4,
                "title": "T",
                "link": "https://x",
                "active": False,
                "metadata": {},
                "layout": "classic",
                "linkType": "external",
            },
        )


    def test_text_fields_are_coerced(self):
        link = Link.from_document(
            {"id": 1, "title": 123, "link": None, "metadata": "oops", "layout": 5}
        )
        self.assertEqual(link.title, "123")
        self.assertEqual(link.link, "")
        self.assertIsNone(link.metadata)
        self.assertEqual(link.layout, "5")
        self.assertEqual(link.link_type, "external")


class PublicProfileTests(unittest.TestCase):
    def test_only_active_links_and_photo_fallback(self):
        profile = PublicProfile.from_user_document(
            {
                "username": "alice",
                "profilePicture": "https://x/p.png",
                "email": "alice@example.com",
                "links": [
                    {"id": 1, "title": "On", "link": "https://a", "active": True},
                    {"id": 2, "title": "Off", "link": "https://b"},
                ],
            }
        )
        data = profile.as_dict()
        self.assertEqual(data["photoUrl"], "https://x/p.png")
        self.assertEqual([link["title"] for link in data["links"]], ["On"])
        self.assertNotIn("email", data)


if __name__ == "__main__":
    unittest.main()
