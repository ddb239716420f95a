from typing import Tuple

import numpy as np
import torch
from torch.utils.data import Dataset as TorchDataset


class FeatureDataset(TorchDataset[Tuple[torch.Tensor, torch.Tensor]]):
    """PyTorch Dataset for pre-extracted image features and label ids."""

    def __init__(self, features: np.ndarray, label_ids: np.ndarray):
        assert len(features) == len(
            label_ids
        ), "Features and labels must have the same length."
        self.features = torch.as_tensor(features, dtype=torch.float32)
        # CrossEntropyLoss expects long
        self.label_ids = torch.as_tensor(label_ids, dtype=torch.long)

    def __len__(self) -> int:
        return len(self.label_ids)

    def __getitem__(self, idx: int) -> Tuple[torch.Tensor, torch.Tensor]:
        return self.features[idx], self.label_ids[idx]
