"""Design-time survey graph models.

The editor produces a list of nodes and a list of edges. Each node carries a
`type` tag and a `data` payload whose shape depends on the type:
- Structural nodes: StartNode, EndNode, BranchNode
- Question nodes: text, numeric, choice, matrix, rating, consent, ...
- Media nodes: image / video / audio with an optional follow-up question

All payloads share `label`, `description` and an optional skip-logic
`condition`. Keys are accepted in the editor's camelCase or in snake_case, and
unknown keys are kept so payloads round-trip unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from surveyflow.core.logic import LogicGroup


def generate_id() -> str:
    """Generate a unique ID for nodes/edges."""
    return uuid4().hex[:12]


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class NodeType(str, Enum):
    """Node kinds the editor can place on the canvas."""
    START = "start"
    END = "end"
    BRANCH = "branch"
    TEXT_INPUT = "textInput"
    EMAIL_INPUT = "emailInput"
    DATE_INPUT = "dateInput"
    ZIP_CODE_INPUT = "zipCodeInput"
    MULTI_INPUT = "multiInput"
    NUMBER_INPUT = "numberInput"
    SLIDER = "slider"
    SINGLE_CHOICE = "singleChoice"
    MULTIPLE_CHOICE = "multipleChoice"
    DROPDOWN = "dropdown"
    RANKING = "ranking"
    CONSENT = "consent"
    RATING = "rating"
    MATRIX_CHOICE = "matrixChoice"
    CASCADING_CHOICE = "cascadingChoice"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class SessionOutcome(str, Enum):
    """How a respondent session is closed when it reaches an end node."""
    COMPLETED = "completed"
    DISQUALIFIED = "disqualified"
    QUALITY_TERMINATE = "quality_terminate"
    SECURITY_TERMINATE = "security_terminate"


class BranchHandle(str, Enum):
    """Outgoing handles on a branch node."""
    TRUE = "true"
    FALSE = "false"


# -----------------------------------------------------------------------------
# Shared payload pieces
# -----------------------------------------------------------------------------


class Position(BaseModel):
    """2D position on the editor canvas. Ignored by the engine."""
    x: float = 0.0
    y: float = 0.0


class Option(BaseModel):
    """A selectable answer: what the respondent sees and what gets stored."""
    label: str = ""
    value: Any = None

    model_config = ConfigDict(extra="allow")


class NodeData(BaseModel):
    """Fields shared by every node payload."""
    label: str = ""
    description: str = ""
    condition: Optional[LogicGroup] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    @property
    def skip_condition(self) -> Optional[LogicGroup]:
        """Node-level visibility condition, or None when the node always shows."""
        if self.condition is None or self.condition.is_empty:
            return None
        return self.condition

    def answer_options(self) -> List[Option]:
        """Options used to map a displayed label back to its stored value."""
        return []

    @property
    def other_option_label(self) -> Optional[str]:
        """Label of the open-ended option, '' for the default, None if absent."""
        return None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class StartData(NodeData):
    welcome_message: str = ""


class EndData(NodeData):
    message: str = ""
    redirect_url: Optional[str] = None
    outcome: SessionOutcome = SessionOutcome.COMPLETED


class BranchData(NodeData):
    """Branch payload. `condition` picks the route; it is not skip logic."""

    @property
    def skip_condition(self) -> Optional[LogicGroup]:
        return None

    @property
    def routing_condition(self) -> Optional[LogicGroup]:
        return self.condition


class TextData(NodeData):
    placeholder: str = ""
    long_answer: bool = False


class ZipCodeData(NodeData):
    allowed_zips: Union[str, List[str], None] = None


class MultiInputData(NodeData):
    input_fields: List[Option] = Field(default_factory=list, alias="fields")


class NumericData(NodeData):
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None


class ChoiceData(NodeData):
    options: List[Option] = Field(default_factory=list)
    allow_other: bool = False
    other_label: Optional[str] = None
    max_choices: Optional[int] = None
    searchable: bool = False

    def answer_options(self) -> List[Option]:
        return self.options

    @property
    def other_option_label(self) -> Optional[str]:
        if not self.allow_other:
            return None
        return self.other_label or ""


class ConsentData(NodeData):
    checkbox_label: str = ""


class RatingData(NodeData):
    items: List[Option] = Field(default_factory=list)
    max_rating: int = 5


class MatrixData(NodeData):
    """Grid question. Answers are keyed by row value; cells hold column values."""
    rows: List[Option] = Field(default_factory=list)
    columns: List[Option] = Field(default_factory=list)
    multiple: bool = False

    def answer_options(self) -> List[Option]:
        return self.columns


class CascadingData(NodeData):
    steps: List[Dict[str, Any]] = Field(default_factory=list)


class MediaData(NodeData):
    url: Optional[str] = None
    urls: List[Any] = Field(default_factory=list)
    alt: Optional[str] = None
    autoplay: bool = False
    interaction_type: str = "none"
    question_label: Optional[str] = None
    slider_config: Optional[str] = None
    choices: List[Option] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Node variants
# -----------------------------------------------------------------------------


class NodeBase(BaseModel):
    """Envelope shared by every node variant."""
    id: str = Field(default_factory=generate_id)
    position: Position = Field(default_factory=Position)

    model_config = ConfigDict(extra="ignore")

    @property
    def label(self) -> str:
        return self.data.label or self.id


class StartNode(NodeBase):
    type: Literal["start"] = "start"
    data: StartData = Field(default_factory=StartData)


class EndNode(NodeBase):
    type: Literal["end"] = "end"
    data: EndData = Field(default_factory=EndData)


class BranchNode(NodeBase):
    type: Literal["branch"] = "branch"
    data: BranchData = Field(default_factory=BranchData)


class TextNode(NodeBase):
    type: Literal["textInput", "emailInput", "dateInput"] = "textInput"
    data: TextData = Field(default_factory=TextData)


class ZipCodeNode(NodeBase):
    type: Literal["zipCodeInput"] = "zipCodeInput"
    data: ZipCodeData = Field(default_factory=ZipCodeData)


class MultiInputNode(NodeBase):
    type: Literal["multiInput"] = "multiInput"
    data: MultiInputData = Field(default_factory=MultiInputData)


class NumericNode(NodeBase):
    type: Literal["numberInput", "slider"] = "numberInput"
    data: NumericData = Field(default_factory=NumericData)


class ChoiceNode(NodeBase):
    type: Literal["singleChoice", "multipleChoice", "dropdown", "ranking"] = "singleChoice"
    data: ChoiceData = Field(default_factory=ChoiceData)


class ConsentNode(NodeBase):
    type: Literal["consent"] = "consent"
    data: ConsentData = Field(default_factory=ConsentData)


class RatingNode(NodeBase):
    type: Literal["rating"] = "rating"
    data: RatingData = Field(default_factory=RatingData)


class MatrixNode(NodeBase):
    type: Literal["matrixChoice"] = "matrixChoice"
    data: MatrixData = Field(default_factory=MatrixData)


class CascadingNode(NodeBase):
    type: Literal["cascadingChoice"] = "cascadingChoice"
    data: CascadingData = Field(default_factory=CascadingData)


class MediaNode(NodeBase):
    type: Literal["image", "video", "audio"] = "image"
    data: MediaData = Field(default_factory=MediaData)


Node = Annotated[
    Union[
        StartNode,
        EndNode,
        BranchNode,
        TextNode,
        ZipCodeNode,
        MultiInputNode,
        NumericNode,
        ChoiceNode,
        ConsentNode,
        RatingNode,
        MatrixNode,
        CascadingNode,
        MediaNode,
    ],
    Field(discriminator="type"),
]

_NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)

DATA_MODELS: Dict[str, Type[NodeData]] = {
    NodeType.START.value: StartData,
    NodeType.END.value: EndData,
    NodeType.BRANCH.value: BranchData,
    NodeType.TEXT_INPUT.value: TextData,
    NodeType.EMAIL_INPUT.value: TextData,
    NodeType.DATE_INPUT.value: TextData,
    NodeType.ZIP_CODE_INPUT.value: ZipCodeData,
    NodeType.MULTI_INPUT.value: MultiInputData,
    NodeType.NUMBER_INPUT.value: NumericData,
    NodeType.SLIDER.value: NumericData,
    NodeType.SINGLE_CHOICE.value: ChoiceData,
    NodeType.MULTIPLE_CHOICE.value: ChoiceData,
    NodeType.DROPDOWN.value: ChoiceData,
    NodeType.RANKING.value: ChoiceData,
    NodeType.CONSENT.value: ConsentData,
    NodeType.RATING.value: RatingData,
    NodeType.MATRIX_CHOICE.value: MatrixData,
    NodeType.CASCADING_CHOICE.value: CascadingData,
    NodeType.IMAGE.value: MediaData,
    NodeType.VIDEO.value: MediaData,
    NodeType.AUDIO.value: MediaData,
}


def parse_node(raw: Any) -> Node:
    """Validate a raw editor node into its typed variant."""
    if isinstance(raw, NodeBase):
        return raw
    return _NODE_ADAPTER.validate_python(raw)


def data_model_for(node_type: str) -> Optional[Type[NodeData]]:
    """Payload model for a node type, or None for unknown types."""
    return DATA_MODELS.get(node_type)


# -----------------------------------------------------------------------------
# Edges and the editable graph
# -----------------------------------------------------------------------------


class Edge(BaseModel):
    """Directed connection between two nodes.

    For branch sources, source_handle selects the route ("true"/"false").
    For every other source it is ignored.
    """
    id: str = Field(default_factory=generate_id)
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    type: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def parse_edge(raw: Any) -> Edge:
    if isinstance(raw, Edge):
        return raw
    return Edge.model_validate(raw)


class Viewport(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


class DesignGraph(BaseModel):
    """Editable graph as saved by the editor."""
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    viewport: Optional[Viewport] = None

    model_config = ConfigDict(extra="ignore")

    def get_node(self, node_id: str) -> Optional[NodeBase]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edges_from(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.source == node_id]
