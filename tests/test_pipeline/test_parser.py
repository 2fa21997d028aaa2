"""Tests for feature extraction and the parser's read-only views."""

from __future__ import annotations

import json

import pytest

from integration_features.blocks.nodes import Block
from integration_features.pipeline.parser import FeatureParser, extract_features
from integration_features.pipeline.records import UNCATEGORIZED_ID, ExtractionResult

GROUP = "popup-maker/integration-features-group"
FEATURE = "popup-maker/integration-feature"


def paragraph(html: str) -> dict:
    return {"blockName": "core/paragraph", "attrs": {}, "innerHTML": html, "innerContent": [html], "innerBlocks": []}


def feature(text: str = "", tier: str | None = None, children: list | None = None, **attrs) -> dict:
    if tier is not None:
        attrs["tier"] = tier
    children = children or []
    markup = (
        '<div class="pm-integration-feature">'
        f'<span class="pm-integration-feature__label">{text}</span></div>'
    )
    return {
        "blockName": FEATURE,
        "attrs": attrs,
        "innerHTML": markup,
        "innerContent": [markup, *([None] * len(children))],
        "innerBlocks": children,
    }


def group(heading: str = "", features: list | None = None, **attrs) -> dict:
    attrs.setdefault("heading", heading)
    inner = features or []
    return {
        "blockName": GROUP,
        "attrs": attrs,
        "innerHTML": "",
        "innerContent": [None] * len(inner),
        "innerBlocks": inner,
    }


def wrapper(*children: dict, name: str = "core/group") -> dict:
    return {"blockName": name, "attrs": {}, "innerHTML": "", "innerContent": [], "innerBlocks": list(children)}


WHITESPACE = {"blockName": None, "attrs": {}, "innerHTML": "\n\n", "innerContent": ["\n\n"], "innerBlocks": []}


def assert_counts_consistent(result: ExtractionResult) -> None:
    per_category = sum(len(category.features) for category in result.categories)
    assert result.total_features == sum(result.features_by_tier.values()) == per_category


class TestScenarios:
    def test_group_without_features(self):
        result = extract_features([group("CRM")])

        assert len(result.categories) == 1
        assert result.categories[0].heading == "CRM"
        assert result.categories[0].features == []
        assert result.total_features == 0

    def test_standalone_feature_goes_to_uncategorized(self):
        result = extract_features([feature("Sync Leads", tier="pro")])

        assert len(result.categories) == 1
        bucket = result.categories[0]
        assert bucket.id == UNCATEGORIZED_ID
        assert bucket.heading == "Features"
        assert bucket.icon == "admin-plugins"
        assert [f.label for f in bucket.features] == ["Sync Leads"]
        assert result.features_by_tier == {"free": 0, "pro": 1, "proplus": 0}

    def test_group_plus_standalone_feature(self):
        tree = [
            group("Forms", [feature("Contact", tier="free"), feature("Payments", tier="proplus")]),
            WHITESPACE,
            wrapper(feature("Webhooks", tier="pro")),
        ]

        result = extract_features(tree)

        assert [c.heading for c in result.categories] == ["Forms", "Features"]
        assert len(result.categories[0].features) == 2
        assert len(result.categories[1].features) == 1
        assert result.total_features == 3
        assert result.features_by_tier == {"free": 1, "pro": 1, "proplus": 1}


class TestTraversal:
    def test_idempotent(self):
        tree = [group("Forms", [feature("A"), feature("B", tier="pro")]), feature("C")]
        assert extract_features(tree) == extract_features(tree)

    def test_parse_twice_does_not_accumulate(self):
        tree = [feature("A"), feature("B")]
        parser = FeatureParser(tree)
        parser.parse(tree)
        assert parser.get_total_count() == 2

    @pytest.mark.parametrize(
        "tree",
        [
            [],
            [group("Empty")],
            [feature("A"), group("G", [feature("B", tier="pro")]), feature("C", tier="proplus")],
            [wrapper(wrapper(group("Deep", [feature("X")])), feature("Y", tier="pro"))],
        ],
    )
    def test_count_invariant(self, tree):
        assert_counts_consistent(extract_features(tree))

    def test_single_uncategorized_bucket_positioned_at_first_use(self):
        tree = [
            group("First", [feature("A")]),
            feature("Loose 1"),
            group("Second", [feature("B")]),
            wrapper(feature("Loose 2")),
        ]

        result = extract_features(tree)

        ids = [c.id for c in result.categories]
        assert ids.count(UNCATEGORIZED_ID) == 1
        assert [c.heading for c in result.categories] == ["First", "Features", "Second"]
        assert [f.label for f in result.categories[1].features] == ["Loose 1", "Loose 2"]

    def test_groups_found_inside_wrappers(self):
        tree = [wrapper(wrapper(group("Nested", [feature("Deep")]), name="core/column"), name="core/columns")]

        result = extract_features(tree)

        assert [c.heading for c in result.categories] == ["Nested"]
        assert result.total_features == 1

    def test_group_contents_are_scanned_one_level_only(self):
        tree = [group("Forms", [feature("Direct"), wrapper(feature("Hidden")), paragraph("<p>note</p>")])]

        result = extract_features(tree)

        assert [f.label for f in result.categories[0].features] == ["Direct"]
        assert result.total_features == 1

    def test_freeform_blocks_skipped(self):
        result = extract_features([WHITESPACE, WHITESPACE])
        assert result.categories == []

    def test_accepts_block_models(self):
        tree = [Block.model_validate(feature("Model", tier="pro"))]
        result = extract_features(tree)
        assert result.categories[0].features[0].label == "Model"

    def test_deeply_nested_block_dicts(self):
        tree: list = [group("Deep", [feature("Inner", tier="pro")])]
        for _ in range(3000):
            tree = [wrapper(*tree)]
        tree.append(feature("After"))

        result = extract_features(tree)

        assert [c.heading for c in result.categories] == ["Deep", "Features"]
        assert result.total_features == 2
        assert_counts_consistent(result)

    def test_deeply_nested_markup(self):
        depth = 3000
        content = (
            "<!-- wp:group -->" * depth
            + '<!-- wp:popup-maker/integration-feature {"label":"Buried","tier":"proplus"} /-->'
            + "<!-- /wp:group -->" * depth
        )

        parser = FeatureParser.from_content(content)

        assert [f.label for f in parser.get_all_features()] == ["Buried"]
        assert parser.get_tier_counts() == {"free": 0, "pro": 0, "proplus": 1}


class TestMalformedInput:
    @pytest.mark.parametrize("tree", [None, "not a tree", 42, {"blockName": FEATURE}])
    def test_non_list_yields_empty_result(self, tree):
        result = extract_features(tree)

        assert result.categories == []
        assert result.total_features == 0
        assert result.features_by_tier == {"free": 0, "pro": 0, "proplus": 0}

    def test_non_list_logs_suppressed_error(self, caplog):
        with caplog.at_level("WARNING"):
            extract_features("nope")
        assert any(getattr(r, "error_code", None) == "BLOCK_TREE_MALFORMED" for r in caplog.records)

    def test_junk_items_and_bad_fields_ignored(self):
        tree = [
            "text",
            7,
            {"blockName": FEATURE, "attrs": "broken", "innerHTML": None, "innerBlocks": "nope"},
        ]

        result = extract_features(tree)

        assert result.total_features == 1
        only = result.categories[0].features[0]
        assert only.label == ""
        assert only.tier == "free"
        assert only.description == ""

    @pytest.mark.parametrize("count", ["--5", "²", "12abc", "1e3"])
    def test_malformed_feature_count_defaults(self, count):
        result = extract_features([group("G", [feature("A")], featureCount=count)])

        assert result.categories[0].feature_count == 0
        assert result.total_features == 1

    def test_unknown_enum_values_fall_back(self):
        tree = [
            group(
                "G",
                [feature("A", tier="enterprise", iconStyle="arrow")],
                headingTag="h5",
            )
        ]

        result = extract_features(tree)

        category = result.categories[0]
        assert category.heading_tag == "h2"
        assert category.features[0].tier == "free"
        assert category.features[0].icon_style == "plus-minus"
        assert result.features_by_tier["free"] == 1


class TestFeatureParsing:
    def test_default_tier_is_free(self):
        result = extract_features([feature("No tier")])
        assert result.categories[0].features[0].tier == "free"

    def test_label_attribute_stripped(self):
        result = extract_features([feature("ignored", label="<b>Install</b> Now")])
        assert result.categories[0].features[0].label == "Install Now"

    def test_label_from_span_markup_stripped(self):
        result = extract_features([feature("<b>Install</b> Now")])
        assert result.categories[0].features[0].label == "Install Now"

    def test_label_from_inner_content_when_no_inner_html(self):
        block = {
            "blockName": FEATURE,
            "attrs": {},
            "innerContent": [
                '<div><span class="pm-integration-feature__label extra">Split ',
                None,
                "Label</span></div>",
            ],
            "innerBlocks": [paragraph("<p>desc</p>")],
        }

        result = extract_features([block])

        assert result.categories[0].features[0].label == "Split Label"

    def test_label_missing(self):
        block = {"blockName": FEATURE, "attrs": {}, "innerHTML": "<div>No span</div>"}
        result = extract_features([block])
        assert result.categories[0].features[0].label == ""

    def test_description_from_child_paragraph(self):
        result = extract_features([feature("A", children=[paragraph("<p>Syncs every hour.</p>")])])

        parsed = result.categories[0].features[0]
        assert parsed.has_description is True
        assert parsed.description == "<p>Syncs every hour.</p>"

    def test_no_children_no_description(self):
        parsed = extract_features([feature("A")]).categories[0].features[0]
        assert parsed.has_description is False
        assert parsed.description == ""

    def test_explicit_flag_sets_has_description(self):
        parsed = extract_features([feature("A", hasDescription=True)]).categories[0].features[0]
        assert parsed.has_description is True
        assert parsed.description == ""

    def test_description_joins_children_and_skips_empty(self):
        children = [
            paragraph("  <p>One</p>\n"),
            paragraph("   "),
            {"blockName": "core/list", "attrs": {}, "innerHTML": "", "innerContent": ["<ul>", None, "</ul>"]},
        ]

        parsed = extract_features([feature("A", children=children)]).categories[0].features[0]

        assert parsed.description == "<p>One</p>\n<ul></ul>"

    def test_display_attributes(self):
        parsed = extract_features(
            [feature("A", showFreeBadge=True, iconStyle="chevron")]
        ).categories[0].features[0]
        assert parsed.show_free_badge is True
        assert parsed.icon_style == "chevron"


class TestGroupParsing:
    def test_group_attributes(self):
        tree = [
            group(
                "Forms",
                subheading="Capture leads",
                groupIcon="feedback",
                groupIconColor="#fff",
                groupIconBackgroundColor="#000",
                headingTag="h3",
                showFeatureCount=True,
                featureCount=9,
            )
        ]

        category = extract_features(tree).categories[0]

        assert category.subheading == "Capture leads"
        assert category.icon == "feedback"
        assert category.icon_color == "#fff"
        assert category.icon_background_color == "#000"
        assert category.heading_tag == "h3"
        assert category.show_feature_count is True
        assert category.feature_count == 9

    def test_group_defaults(self):
        category = extract_features([{"blockName": GROUP}]).categories[0]
        assert category.heading == ""
        assert category.icon == "admin-plugins"
        assert category.heading_tag == "h2"
        assert category.show_feature_count is False
        assert category.feature_count == 0

    def test_group_ids_are_unique_and_stable(self):
        tree = [group("Forms & Leads"), group("Forms & Leads"), group(""), group("X", anchor="custom")]

        ids = [c.id for c in extract_features(tree).categories]

        assert ids == ["forms-leads", "forms-leads-2", "group-3", "custom"]
        assert ids == [c.id for c in extract_features(tree).categories]


@pytest.fixture
def parser():
    tree = [
        group(
            "Forms",
            [
                feature("Zoom Integration", tier="pro", children=[paragraph("<p>Meetings</p>")]),
                feature("Contact Form", tier="free"),
            ],
        ),
        feature("Lead Sync", tier="proplus"),
    ]
    return FeatureParser(tree)


class TestAccessors:
    def test_unparsed_defaults(self):
        empty = FeatureParser()
        assert empty.get_data() is None
        assert empty.get_categories() == []
        assert empty.get_all_features() == []
        assert empty.get_tier_counts() == {"free": 0, "pro": 0, "proplus": 0}
        assert empty.get_total_count() == 0
        assert json.loads(empty.to_json())["total_features"] == 0

    def test_all_features_in_category_order(self, parser):
        labels = [f.label for f in parser.get_all_features()]
        assert labels == ["Zoom Integration", "Contact Form", "Lead Sync"]

    def test_features_by_tier(self, parser):
        assert [f.label for f in parser.get_features_by_tier("pro")] == ["Zoom Integration"]
        assert parser.get_features_by_tier("enterprise") == []

    def test_tier_counts_and_total(self, parser):
        assert parser.get_tier_counts() == {"free": 1, "pro": 1, "proplus": 1}
        assert parser.get_total_count() == 3

    def test_features_with_descriptions(self, parser):
        assert [f.label for f in parser.get_features_with_descriptions()] == ["Zoom Integration"]

    def test_search_is_case_insensitive(self, parser):
        assert [f.label for f in parser.search_features("zoom")] == ["Zoom Integration"]
        assert [f.label for f in parser.search_features("FORM")] == ["Contact Form"]
        assert parser.search_features("missing") == []

    def test_empty_search_matches_everything(self, parser):
        assert len(parser.search_features("")) == 3

    def test_summary(self, parser):
        summary = parser.get_summary()

        assert summary.total_categories == 2
        assert summary.total_features == parser.get_total_count()
        assert summary.features_with_descriptions == 1
        assert summary.features_by_tier == {"free": 1, "pro": 1, "proplus": 1}
        assert summary.category_names == ["Forms", "Features"]

    def test_api_format_without_descriptions(self, parser):
        output = parser.to_api_format()

        assert [c.name for c in output] == ["Forms", "Features"]
        assert output[0].icon == "admin-plugins"
        assert all(f.description is None for c in output for f in c.features)

    def test_api_format_with_descriptions(self, parser):
        output = parser.to_api_format(include_descriptions=True)

        first, second = output[0].features
        assert first.description == "<p>Meetings</p>"
        assert second.description is None
        assert "description" not in second.model_dump(exclude_none=True)

    def test_to_json_round_trips(self, parser):
        restored = ExtractionResult.model_validate_json(parser.to_json())
        assert restored == parser.get_data()

    def test_result_is_frozen(self, parser):
        with pytest.raises(Exception):
            parser.get_data().total_features = 10


class TestFromContent:
    def test_parses_block_markup(self):
        content = (
            '<!-- wp:popup-maker/integration-features-group {"heading":"Forms"} -->\n'
            '<div class="pm-integration-features-group">'
            '<!-- wp:popup-maker/integration-feature {"tier":"pro"} -->\n'
            '<div class="pm-integration-feature"><span class="pm-integration-feature__label">Sync Leads</span>'
            "<!-- wp:paragraph -->\n<p>Pushes leads to your CRM.</p>\n<!-- /wp:paragraph --></div>\n"
            "<!-- /wp:popup-maker/integration-feature --></div>\n"
            "<!-- /wp:popup-maker/integration-features-group -->\n\n"
            '<!-- wp:popup-maker/integration-feature {"label":"Standalone"} /-->'
        )

        parser = FeatureParser.from_content(content)

        categories = parser.get_categories()
        assert [c.heading for c in categories] == ["Forms", "Features"]
        synced = categories[0].features[0]
        assert synced.label == "Sync Leads"
        assert synced.tier == "pro"
        assert synced.description == "<p>Pushes leads to your CRM.</p>"
        assert categories[1].features[0].label == "Standalone"
        assert parser.get_tier_counts() == {"free": 1, "pro": 1, "proplus": 0}
