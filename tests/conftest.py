import numpy as np
import pandas as pd
import pytest
import scipy.sparse
import torch

from etm import ETM


VOCAB = ['apple', 'banana', 'cherry', 'date', 'elder', 'fig',
         'grape', 'kiwi', 'lemon', 'mango', 'nut', 'olive']


def make_dtm(num_docs=40, vocab_size=len(VOCAB), seed=0):
    rng = np.random.default_rng(seed)
    counts = rng.poisson(0.8, size=(num_docs, vocab_size))
    # every document gets at least one token
    counts[np.arange(num_docs), rng.integers(0, vocab_size, size=num_docs)] += 1
    return scipy.sparse.csr_matrix(counts.astype(np.float32))


@pytest.fixture
def vocab():
    return list(VOCAB)


@pytest.fixture
def dtm():
    return make_dtm()


@pytest.fixture
def embeddings(vocab):
    rng = np.random.default_rng(1)
    return pd.DataFrame(rng.normal(size=(len(vocab), 5)).astype(np.float32), index=vocab)


@pytest.fixture
def model(vocab):
    torch.manual_seed(1234)
    return ETM(k=3, embeddings=5, dim=16, dropout=0.2, vocab=vocab)
