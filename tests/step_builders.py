"""Builders for small Part-21 exchange files used across the test suites."""

AP242_SCHEMA = "AP242_MANAGED_MODEL_BASED_3D_ENGINEERING_MIM_LF { 1 0 10303 442 1 1 4 }"


def step_text(data: str, *, name: str = "test.stp", schema: str = AP242_SCHEMA) -> str:
    return (
        "ISO-10303-21;\n"
        "HEADER;\n"
        "FILE_DESCRIPTION(('pdm test file'),'2;1');\n"
        f"FILE_NAME('{name}','2026-01-01T00:00:00',('tester'),('lab'),'','','');\n"
        f"FILE_SCHEMA(('{schema}'));\n"
        "ENDSEC;\n"
        "DATA;\n"
        f"{data}\n"
        "ENDSEC;\n"
        "END-ISO-10303-21;\n"
    )


def reference_block(start: int, file_name: str, *, path: str = "", mechanism: str = "URL") -> str:
    """A DOCUMENT_FILE at `#start+1` located through an external identification assignment."""
    return "\n".join(
        [
            f"#{start}=DOCUMENT_TYPE('geometry');",
            f"#{start + 1}=DOCUMENT_FILE('{file_name}','{file_name}','',#{start},'','');",
            f"#{start + 2}=IDENTIFICATION_ROLE('{mechanism}','');",
            f"#{start + 3}=EXTERNAL_SOURCE(IDENTIFIER('{path}'));",
            f"#{start + 4}=APPLIED_EXTERNAL_IDENTIFICATION_ASSIGNMENT("
            f"'{file_name}',#{start + 2},#{start + 3},(#{start + 1}));",
        ]
    )


def part_block(
    start: int,
    product_id: str,
    product_name: str,
    shape_name: str,
    *,
    shape_type: str = "SHAPE_REPRESENTATION",
) -> str:
    """A product whose definition is `#start+2` and shape representation `#start+4`."""
    return "\n".join(
        [
            f"#{start}=PRODUCT('{product_id}','{product_name}','',());",
            f"#{start + 1}=PRODUCT_DEFINITION_FORMATION('1','',#{start});",
            f"#{start + 2}=PRODUCT_DEFINITION('design','',#{start + 1},$);",
            f"#{start + 3}=PRODUCT_DEFINITION_SHAPE('','',#{start + 2});",
            f"#{start + 4}={shape_type}('{shape_name}',(),$);",
            f"#{start + 5}=SHAPE_DEFINITION_REPRESENTATION(#{start + 3},#{start + 4});",
        ]
    )


