"""
1-D profile helpers shared by the grid validators.

Profiles are column or row sums over the canonical square; a 3x3 grid shows
up as two peaks near the 1/3 and 2/3 marks.
"""

from typing import Optional, Tuple

import cv2
import numpy as np


def smooth5(profile: np.ndarray) -> np.ndarray:
    """5-tap box filter; the two samples at each end are left as-is."""
    p = np.asarray(profile, dtype=np.float32).ravel().copy()
    if p.size < 5:
        return p
    p[2:-2] = np.convolve(p, np.ones(5, dtype=np.float32) / 5.0, mode='valid')
    return p


def edge_margin(n: int, margin_frac: float) -> int:
    return max(0, min(n // 4, int(round(margin_frac * n))))


def near_thirds(n: int, i1: int, i2: int, tol_frac: float) -> bool:
    """One position within tol of n/3 and the other within tol of 2n/3."""
    a, b = n / 3.0, 2.0 * n / 3.0
    tol = tol_frac * n
    first, second = sorted((i1, i2))
    return abs(first - a) < tol and abs(second - b) < tol


def two_peaks_prominence(
    profile: np.ndarray,
    min_prominence: float,
    min_sep_frac: float,
    anchor_thirds: bool = True,
    tol_frac: float = 0.15,
    margin_frac: float = 0.0
) -> bool:
    """
    Check for two prominent, separated peaks in a profile.

    The profile is smoothed, its outer margin ignored and the rest min-max
    normalised. Prominence is value minus median. The second peak is the best
    position outside a min_sep_frac * n window around the first.

    Args:
        profile: 1-D profile
        min_prominence: Required prominence of both peaks (0..1)
        min_sep_frac: Minimum peak separation as a fraction of n
        anchor_thirds: Require the peaks near 1/3 and 2/3
        tol_frac: Thirds tolerance as a fraction of n
        margin_frac: Fraction of n ignored at each end

    Returns:
        True if both peaks qualify
    """
    p = smooth5(profile)
    n = p.size
    if n < 8:
        return False

    m = edge_margin(n, margin_frac)
    inner = p[m:n - m] if m else p
    lo, hi = float(inner.min()), float(inner.max())
    if hi - lo < 1e-6:
        return False
    inner = (inner - lo) / (hi - lo)
    prominence = inner - float(np.median(inner))

    i1 = int(np.argmax(prominence))
    window = max(1, int(np.ceil(min_sep_frac * n)))
    suppressed = prominence.copy()
    suppressed[max(0, i1 - window):i1 + window + 1] = -np.inf
    if not np.isfinite(suppressed).any():
        return False
    i2 = int(np.argmax(suppressed))

    strong = prominence[i1] > min_prominence and prominence[i2] > min_prominence
    separated = abs(i1 - i2) > min_sep_frac * n
    if not anchor_thirds:
        return bool(strong and separated)
    return bool(strong and separated and near_thirds(n, i1 + m, i2 + m, tol_frac))


def best_cut_pair(profile: np.ndarray, min_sep: int, margin: int = 0) -> Optional[Tuple[int, int]]:
    """
    Pair (i, j), j - i >= min_sep, maximizing profile[i] + profile[j].

    Ties keep the earliest pair.
    """
    p = np.asarray(profile, dtype=np.float64).ravel()
    n = p.size
    lo, hi = margin, n - margin
    min_sep = max(1, min_sep)
    if hi - lo <= min_sep:
        return None
    inner = p[lo:hi]
    count = inner.size

    # suffix_best[k] = index of max(inner[k:]), earliest on ties
    suffix_best = np.empty(count, dtype=np.int64)
    suffix_best[-1] = count - 1
    for k in range(count - 2, -1, -1):
        nxt = suffix_best[k + 1]
        suffix_best[k] = k if inner[k] >= inner[nxt] else nxt

    best_sum = -np.inf
    best = None
    for i in range(count - min_sep):
        j = suffix_best[i + min_sep]
        s = inner[i] + inner[j]
        if s > best_sum:
            best_sum = s
            best = (i + lo, int(j) + lo)
    return best


def hue_vector(hsv: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Hue as a saturation-scaled unit vector over the full hue circle.

    Returns:
        (cos * S, sin * S, S, V) as float32 arrays, S and V in 0..1
    """
    h = hsv[:, :, 0].astype(np.float32) * (2.0 * np.pi / 180.0)
    s = hsv[:, :, 1].astype(np.float32) / 255.0
    v = hsv[:, :, 2].astype(np.float32) / 255.0
    return np.cos(h) * s, np.sin(h) * s, s, v


def gradient_magnitude(gray: np.ndarray) -> np.ndarray:
    """|dI/dx| + |dI/dy| with 3x3 Sobel, float32."""
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    return np.abs(gx) + np.abs(gy)
