"""glTF exporter for MD2 model files."""
import struct
from typing import BinaryIO, List, Tuple, Union
from pathlib import Path

from pygltflib import (
    GLTF2,
    Buffer,
    BufferView,
    Accessor,
    Mesh,
    Primitive,
    Node,
    Scene,
    Asset,
)

from md2_geometry import assemble_geometry
from md2_parser import load_model_file
from md2_types import AssembledGeometry, Model

ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963
FLOAT = 5126
UNSIGNED_SHORT = 5123
TRIANGLES = 4


class GLTFExporter:
    """Exports one MD2 frame to glTF/GLB format."""

    def __init__(
        self,
        source: Union[str, Path, BinaryIO],
        frame_index: int = 0,
        apply_translate: bool = False,
    ):
        """Initialize exporter with MD2 file path or file-like object.

        Args:
            source: Path to MD2 file or file-like object
            frame_index: Animation frame to export
            apply_translate: Add the frame translate vector to positions
        """
        self.source = source
        self.frame_index = frame_index
        self.apply_translate = apply_translate
        self._model: Model = None

    @property
    def model(self) -> Model:
        """Load and cache the decoded model."""
        if self._model is None:
            self._model = load_model_file(self.source)
        return self._model

    def _compute_bounds(self, vertices: List[Tuple[float, float, float]]) -> Tuple[List[float], List[float]]:
        """Compute min/max bounds for vertices."""
        if not vertices:
            return [0, 0, 0], [0, 0, 0]

        min_bounds = [float("inf")] * 3
        max_bounds = [float("-inf")] * 3

        for v in vertices:
            for i in range(3):
                min_bounds[i] = min(min_bounds[i], v[i])
                max_bounds[i] = max(max_bounds[i], v[i])

        return min_bounds, max_bounds

    def build(self, geometry: AssembledGeometry, name: str = "mesh_0") -> Tuple[GLTF2, bytes]:
        """Build a glTF document and its binary blob from assembled geometry."""
        positions = geometry.positions
        uvs = geometry.uvs

        position_data = b"".join(struct.pack("<3f", *p) for p in positions)
        uv_data = b"".join(struct.pack("<2f", *uv) for uv in uvs)
        index_data = geometry.index_bytes()

        # Pad index data to 4-byte alignment if needed
        if len(index_data) % 4 != 0:
            index_data += b"\x00" * (4 - len(index_data) % 4)

        buffer_data = position_data + uv_data + index_data

        gltf = GLTF2()
        gltf.asset = Asset(version="2.0", generator="MD2 Extractor")
        gltf.buffers = [Buffer(byteLength=len(buffer_data))]

        gltf.bufferViews = [
            BufferView(
                buffer=0,
                byteOffset=0,
                byteLength=len(position_data),
                target=ARRAY_BUFFER,
            ),
            BufferView(
                buffer=0,
                byteOffset=len(position_data),
                byteLength=len(uv_data),
                target=ARRAY_BUFFER,
            ),
            BufferView(
                buffer=0,
                byteOffset=len(position_data) + len(uv_data),
                byteLength=len(index_data),
                target=ELEMENT_ARRAY_BUFFER,
            ),
        ]

        min_bounds, max_bounds = self._compute_bounds(positions)

        gltf.accessors = [
            Accessor(
                bufferView=0,
                componentType=FLOAT,
                count=len(positions),
                type="VEC3",
                max=max_bounds,
                min=min_bounds,
            ),
            Accessor(
                bufferView=1,
                componentType=FLOAT,
                count=len(uvs),
                type="VEC2",
            ),
            Accessor(
                bufferView=2,
                componentType=UNSIGNED_SHORT,
                count=len(geometry.indices),
                type="SCALAR",
            ),
        ]

        gltf.meshes = [
            Mesh(
                name=name,
                primitives=[
                    Primitive(
                        attributes={"POSITION": 0, "TEXCOORD_0": 1},
                        indices=2,
                        mode=TRIANGLES,
                    )
                ],
            )
        ]
        gltf.nodes = [Node(mesh=0, name=name)]
        gltf.scenes = [Scene(nodes=[0])]
        gltf.scene = 0

        return gltf, buffer_data

    def export(self, output_path: str):
        """Export the selected frame to a glTF/GLB file.

        Args:
            output_path: Path for output .glb file

        Raises:
            FormatError: If the MD2 data is malformed
            IndexError: If the frame or a vertex index is out of range
            ValueError: If the frame produces no triangles
        """
        model = self.model
        geometry = assemble_geometry(model, self.frame_index, self.apply_translate)
        if not geometry.indices:
            raise ValueError("No mesh data found in MD2 file")

        name = model.frames[self.frame_index].name or f"frame_{self.frame_index}"
        gltf, buffer_data = self.build(geometry, name)

        gltf.set_binary_blob(buffer_data)
        gltf.save(output_path)
