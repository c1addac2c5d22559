from x402_gate.extensions.bazaar import (
    BAZAAR,
    OutputConfig,
    bazaar_resource_server_extension,
    declare_discovery_extension,
)

from .mocks import make_context


class TestDeclareDiscoveryExtension:
    def test_query_style_endpoint(self):
        ext = declare_discovery_extension(
            input={"city": "Berlin"},
            input_schema={"properties": {"city": {"type": "string"}}},
        )

        bazaar = ext[BAZAAR]
        assert bazaar["info"]["input"] == {"type": "http", "queryParams": {"city": "Berlin"}}
        input_schema = bazaar["schema"]["properties"]["input"]
        assert input_schema["properties"]["method"]["enum"] == ["GET", "HEAD", "DELETE"]
        assert input_schema["properties"]["queryParams"]["properties"]["city"] == {"type": "string"}
        assert input_schema["required"] == ["type"]

    def test_body_style_endpoint(self):
        ext = declare_discovery_extension(input={"prompt": "hi"}, body_type="json")

        info_input = ext[BAZAAR]["info"]["input"]
        assert info_input == {"type": "http", "bodyType": "json", "body": {"prompt": "hi"}}
        input_schema = ext[BAZAAR]["schema"]["properties"]["input"]
        assert input_schema["properties"]["method"]["enum"] == ["POST", "PUT", "PATCH"]
        assert input_schema["required"] == ["type", "bodyType", "body"]

    def test_output_example(self):
        ext = declare_discovery_extension(output={"example": {"weather": "sunny"}})

        assert ext[BAZAAR]["info"]["output"] == {"type": "json", "example": {"weather": "sunny"}}
        assert "output" in ext[BAZAAR]["schema"]["properties"]

    def test_output_config_with_schema(self):
        ext = declare_discovery_extension(
            output=OutputConfig(example={"t": 72}, schema={"properties": {"t": {"type": "number"}}})
        )

        example_schema = ext[BAZAAR]["schema"]["properties"]["output"]["properties"]["example"]
        assert example_schema["type"] == "object"
        assert example_schema["properties"] == {"t": {"type": "number"}}

    def test_no_output_without_example(self):
        ext = declare_discovery_extension()

        assert "output" not in ext[BAZAAR]["info"]
        assert "output" not in ext[BAZAAR]["schema"]["properties"]


class TestBazaarResourceServerExtension:
    def test_adds_method_to_info_and_schema(self):
        declared = declare_discovery_extension()[BAZAAR]

        enriched = bazaar_resource_server_extension.enrich_declaration(
            declared, make_context("/api/weather", "get")
        )

        assert enriched["info"]["input"]["method"] == "GET"
        assert enriched["schema"]["properties"]["input"]["required"] == ["type", "method"]
        assert declared["schema"]["properties"]["input"]["required"] == ["type"]

    def test_without_transport_context_returns_declaration(self):
        declared = declare_discovery_extension()[BAZAAR]

        assert bazaar_resource_server_extension.enrich_declaration(declared, None) is declared
