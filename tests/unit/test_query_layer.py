import io

import pytest

from pdm_xref.decode.part21 import Part21Decoder
from pdm_xref.decode.repository import Repository
from pdm_xref.errors import (
    MultipleDocumentRepresentationTypes,
    MultipleProductDefinitionShapes,
    PDMError,
)
from pdm_xref.query import documents, products
from pdm_xref.query.lookup import at_most_one
from pdm_xref.types import DocumentSourceLocation
from step_builders import part_block, reference_block, step_text


def _model(repository: Repository, data: str, name: str = "assembly.stp"):
    exchange = Part21Decoder(repository).decode(io.StringIO(step_text(data)), name=name)
    return exchange.models[0]


def test_file_locations_follow_assignment_rules() -> None:
    repository = Repository()
    data = "\n".join(
        [
            reference_block(1, "part1.stp", path="/cad/parts"),
            "#10=DOCUMENT_TYPE('geometry');",
            "#11=DOCUMENT_FILE('doc-11','','',#10,'','');",
            "#12=IDENTIFICATION_ROLE('URL','');",
            "#13=EXTERNAL_SOURCE(IDENTIFIER('part2.stp'));",
            "#14=APPLIED_EXTERNAL_IDENTIFICATION_ASSIGNMENT('',#12,#13,(#11));",
            "#20=DOCUMENT_FILE('part3.stp','','',#10,'','');",
        ]
    )
    model = _model(repository, data)

    with repository.view("assembly.TEMP", [model]) as view:
        assigned = documents.file_locations(view, model.entities[2])
        source_named = documents.file_locations(view, model.entities[11])
        fallback = documents.file_locations(view, model.entities[20])

    assert assigned == [DocumentSourceLocation("part1.stp", "/cad/parts", "URL")]
    assert source_named == [DocumentSourceLocation("part2.stp", None, "URL")]
    assert fallback == [DocumentSourceLocation("part3.stp", None, None)]
    assert repository.open_views == set()


def test_file_with_several_assignments_lists_every_location() -> None:
    repository = Repository()
    data = "\n".join(
        [
            reference_block(1, "part1.stp", path="/cad"),
            "#10=EXTERNAL_SOURCE(IDENTIFIER('/backup'));",
            "#11=APPLIED_EXTERNAL_IDENTIFICATION_ASSIGNMENT('part1.stp',#3,#10,(#2));",
        ]
    )
    model = _model(repository, data)

    with repository.view("assembly.TEMP", [model]) as view:
        locations = documents.file_locations(view, model.entities[2])
        named = documents.files_named(view, "part1.stp")

    assert [location.path for location in locations] == ["/cad", "/backup"]
    assert named == [model.entities[2]]


def test_used_in_filters_by_type_and_role() -> None:
    repository = Repository()
    model = _model(repository, part_block(1, "P-1", "Plate", "BODY"))
    product = model.entities[1]

    with repository.view("assembly.TEMP", [model]) as view:
        assert view.used_in(product, "PRODUCT_DEFINITION_FORMATION", "of_product") == [model.entities[2]]
        assert view.used_in(product, "PRODUCT_DEFINITION_FORMATION", "DESCRIPTION") == []
        assert view.used_in(product, "PRODUCT_DEFINITION", "OF_PRODUCT") == []
        assert view.used_in("not an entity", "PRODUCT", "ID") == []


def test_product_walk_from_product_to_shape() -> None:
    repository = Repository()
    model = _model(
        repository,
        part_block(1, "P-1", "Plate", "BODY", shape_type="ADVANCED_BREP_SHAPE_REPRESENTATION"),
    )
    product = model.entities[1]

    with repository.view("assembly.TEMP", [model]) as view:
        definitions = products.definitions_of_item(view, product)
        shapes = products.shape_representations(view, definitions)
        identity = products.shape_identity(view, shapes[0])

    assert definitions == [model.entities[3]]
    assert shapes == [model.entities[5]]
    assert identity == ("BODY", "Plate", "P-1")
    assert products.master_base(model.entities[3]) is product


def test_shape_without_product_has_no_identity() -> None:
    repository = Repository()
    model = _model(repository, "#1=SHAPE_REPRESENTATION('LOOSE',(),$);")

    with repository.view("assembly.TEMP", [model]) as view:
        assert products.shape_identity(view, model.entities[1]) is None
        assert products.product_of_representation(view, model.entities[1]) is None


def test_shape_of_rejects_several_shapes() -> None:
    repository = Repository()
    data = part_block(1, "P-1", "Plate", "BODY") + "\n#20=PRODUCT_DEFINITION_SHAPE('','',#3);"
    model = _model(repository, data)

    with repository.view("assembly.TEMP", [model]) as view:
        with pytest.raises(MultipleProductDefinitionShapes) as excinfo:
            products.shape_of(view, model.entities[3])

    assert len(excinfo.value.matches) == 2
    assert "product definition shapes" in excinfo.value.message


def test_at_most_one() -> None:
    assert at_most_one([], MultipleProductDefinitionShapes) is None
    assert at_most_one(["a"], MultipleProductDefinitionShapes) == "a"
    with pytest.raises(MultipleProductDefinitionShapes):
        at_most_one(["a", "b"], MultipleProductDefinitionShapes)


def test_document_references_include_equivalent_documents() -> None:
    repository = Repository()
    data = "\n".join(
        [
            reference_block(1, "part1.stp"),
            "#10=PRODUCT('P-1','Plate','',());",
            "#11=PRODUCT_DEFINITION_FORMATION('1','',#10);",
            "#12=PRODUCT_DEFINITION_WITH_ASSOCIATED_DOCUMENTS('design','',#11,$,(#2));",
            "#13=DOCUMENT('DOC-1','Plate geometry','',#1);",
            "#14=DOCUMENT_PRODUCT_EQUIVALENCE('equivalence','',#13,#11);",
            "#15=APPLIED_DOCUMENT_REFERENCE(#13,'',(#10));",
        ]
    )
    model = _model(repository, data)

    with repository.view("assembly.TEMP", [model]) as view:
        references = documents.document_references(view, model.entities[2])
        applied = documents.applications(view, references)
        documented = documents.documentation_files(view, model.entities[12])

    assert references == [model.entities[2], model.entities[13]]
    assert applied == [model.entities[15]]
    assert documented == [model.entities[2]]


def test_definitional_shape_lookups() -> None:
    repository = Repository()
    data = "\n".join(
        [
            reference_block(1, "part1.stp"),
            "#10=SHAPE_REPRESENTATION('BODY',(),$);",
            "#11=PROPERTY_DEFINITION('external definition','',#2);",
            "#12=PROPERTY_DEFINITION_REPRESENTATION(#11,#10);",
            "#13=PROPERTY_DEFINITION('material','',#2);",
            "#14=PROPERTY_DEFINITION_REPRESENTATION(#13,#10);",
        ]
    )
    model = _model(repository, data)

    with repository.view("assembly.TEMP", [model]) as view:
        usages = documents.definitional_shape_applications(view, [model.entities[2]])
        defining_file = documents.definitional_shape_definition(view, model.entities[10])

    assert usages == [model.entities[12]]
    assert defining_file is model.entities[2]


def test_view_lifecycle_is_enforced() -> None:
    repository = Repository()
    model = _model(repository, part_block(1, "P-1", "Plate", "BODY"))

    with repository.view("assembly.MASTER", [model]) as view:
        assert view.read_only
        assert repository.open_views == {"assembly.MASTER"}
        with pytest.raises(PDMError):
            view.add_models([model])

    assert view.disposed
    assert repository.open_views == set()
    with pytest.raises(PDMError):
        view.extent("PRODUCT")


def test_view_is_released_when_a_query_raises() -> None:
    repository = Repository()
    data = part_block(1, "P-1", "Plate", "BODY") + "\n#20=PRODUCT_DEFINITION_SHAPE('','',#3);"
    model = _model(repository, data)

    with pytest.raises(MultipleProductDefinitionShapes):
        with repository.view("assembly.MASTER", [model]) as view:
            products.shape_of(view, model.entities[3])

    assert view.disposed
    assert repository.open_views == set()


def test_document_type_and_version_lookups() -> None:
    repository = Repository()
    data = "\n".join(
        [
            reference_block(1, "part1.stp"),
            "#10=DOCUMENT_REPRESENTATION_TYPE('digital',#2);",
            "#11=IDENTIFICATION_ROLE('version','');",
            "#12=APPLIED_IDENTIFICATION_ASSIGNMENT('B',#11,(#2));",
            "#20=DOCUMENT_FILE('part2.stp','','',#1,'','');",
            "#21=DOCUMENT_REPRESENTATION_TYPE('digital',#20);",
            "#22=DOCUMENT_REPRESENTATION_TYPE('physical',#20);",
        ]
    )
    model = _model(repository, data)

    with repository.view("assembly.TEMP", [model]) as view:
        assert documents.representation_type(view, model.entities[2]) is model.entities[10]
        assert documents.version_of_file(view, model.entities[2]) is model.entities[12]
        assert documents.version_of_file(view, model.entities[20]) is None
        with pytest.raises(MultipleDocumentRepresentationTypes):
            documents.representation_type(view, model.entities[20])
