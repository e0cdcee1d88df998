from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from typing import TypeAlias

# typing only
FloatArray: TypeAlias = NDArray[np.float64]
