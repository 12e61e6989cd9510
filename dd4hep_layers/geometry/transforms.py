import numpy as np

from dd4hep_layers.utils.units import CM


class Transform3D:
    """Rigid transform: rotation (columns are the local axes) + translation in mm"""

    def __init__(self, rotation=None, translation=None):
        if rotation is None:
            rotation = np.identity(3)
        if translation is None:
            translation = np.zeros(3)
        self.rotation = np.array(rotation, dtype=float).reshape(3, 3)
        self.translation = np.array(translation, dtype=float).reshape(3)

    @classmethod
    def from_translation(cls, translation):
        return cls(np.identity(3), translation)

    def col(self, index):
        """Local axis `index` expressed in global coordinates"""
        return self.rotation[:, index]

    def apply(self, points):
        """Transform local point(s) of shape (3,) or (N, 3) to global"""
        points = np.asarray(points, dtype=float)
        return points @ self.rotation.T + self.translation

    def inverse_apply(self, points):
        """Transform global point(s) back to local coordinates"""
        points = np.asarray(points, dtype=float)
        return (points - self.translation) @ self.rotation

    def with_translation(self, translation):
        return Transform3D(self.rotation, translation)

    def __matmul__(self, other):
        return Transform3D(self.rotation @ other.rotation,
                           self.rotation @ other.translation + self.translation)

    def __eq__(self, other):
        if not isinstance(other, Transform3D):
            return NotImplemented
        return (np.allclose(self.rotation, other.rotation)
                and np.allclose(self.translation, other.translation))

    def __repr__(self):
        return f"Transform3D(translation={self.translation.tolist()})"


def convert_transform(native_transform):
    """
    Convert a native rigid transform into an internal Transform3D.

    Parameters:
    -----------
    native_transform : NativeTransform
        Row-major 3x3 rotation (9 values) and translation in cm, as handed
        out by TGeoMatrix::GetRotationMatrix / GetTranslation

    Returns:
    --------
    Transform3D : rotation unchanged, translation in mm
    """
    rotation = native_transform.rotation
    translation = native_transform.translation

    # columns (r0, r3, r6), (r1, r4, r7), (r2, r5, r8) are the local axes
    x_axis = np.array([rotation[0], rotation[3], rotation[6]], dtype=float)
    y_axis = np.array([rotation[1], rotation[4], rotation[7]], dtype=float)
    z_axis = np.array([rotation[2], rotation[5], rotation[8]], dtype=float)

    return Transform3D(np.column_stack([x_axis, y_axis, z_axis]),
                       np.asarray(translation, dtype=float) * CM)
