import numpy as np
import pytest
import scipy.sparse
import torch

from etm.data.basic_dataset import (
    BasicDataset,
    align_embeddings,
    as_tokencounts,
    get_batch,
    remove_empty_docs,
    save_dataset,
    split_train_test,
)


def test_as_tokencounts_keeps_order_and_counts(vocab):
    x = scipy.sparse.csr_matrix(np.array([[0, 2, 0, 1] + [0] * 8, [3] + [0] * 11], dtype=np.float32))
    tc = as_tokencounts(x, vocab)
    assert len(tc) == 2
    assert tc.vocab_size == len(vocab)
    np.testing.assert_array_equal(tc.tokens[0], [1, 3])
    np.testing.assert_array_equal(tc.counts[0], [2, 1])
    np.testing.assert_array_equal(tc.tokens[1], [0])
    np.testing.assert_array_equal(tc.doc_lengths(), [3, 3])


def test_as_tokencounts_rejects_column_mismatch(vocab):
    x = scipy.sparse.csr_matrix(np.ones((2, 3)))
    with pytest.raises(ValueError, match="columns"):
        as_tokencounts(x, vocab)


def test_batch_row_sums_match_document_totals(dtm, vocab):
    tc = as_tokencounts(dtm, vocab)
    ind = np.arange(dtm.shape[0])
    batch = get_batch(tc.tokens, tc.counts, ind, len(vocab))
    assert batch.shape == (dtm.shape[0], len(vocab))
    expected = np.asarray(dtm.sum(axis=1)).ravel()
    np.testing.assert_allclose(batch.sum(1).numpy(), expected)
    np.testing.assert_allclose(batch.numpy(), dtm.toarray())


def test_batch_follows_given_indices(dtm, vocab):
    tc = as_tokencounts(dtm, vocab)
    ind = torch.randperm(dtm.shape[0])[:7].numpy()
    batch = get_batch(tc.tokens, tc.counts, ind, len(vocab))
    np.testing.assert_allclose(batch.numpy(), dtm.toarray()[ind])


def test_batch_index_out_of_range(dtm, vocab):
    tc = as_tokencounts(dtm, vocab)
    with pytest.raises(IndexError):
        get_batch(tc.tokens, tc.counts, [0, dtm.shape[0]], len(vocab))
    with pytest.raises(IndexError):
        get_batch(tc.tokens, tc.counts, [-1], len(vocab))


@pytest.mark.parametrize("num_docs", [10, 33, 101])
def test_split_train_test_partitions(num_docs):
    idx = split_train_test(num_docs, train_pct=0.7, seed=42)
    train, test1, test2 = (set(idx[k]) for k in ('train', 'test1', 'test2'))
    assert not train & test1
    assert not train & test2
    assert not test1 & test2
    assert train | test1 | test2 == set(range(num_docs))
    assert abs(len(test1) - len(test2)) <= 1


def test_split_train_test_is_seedable():
    a = split_train_test(50, seed=7)
    b = split_train_test(50, seed=7)
    for key in a:
        np.testing.assert_array_equal(a[key], b[key])


def test_split_train_test_rejects_bad_pct():
    with pytest.raises(ValueError):
        split_train_test(10, train_pct=1.5)


def test_remove_empty_docs():
    x = scipy.sparse.csr_matrix(np.array([[1, 0], [0, 0], [0, 2]], dtype=np.float32))
    kept, ids = remove_empty_docs(x, doc_ids=['d1', 'd2', 'd3'])
    assert kept.shape == (2, 2)
    assert list(ids) == ['d1', 'd3']


def test_align_embeddings_errors(embeddings, vocab):
    with pytest.raises(ValueError, match="length mismatch"):
        align_embeddings(embeddings.to_numpy(), vocab[:-1])
    with pytest.raises(ValueError, match="ordering mismatch"):
        align_embeddings(embeddings, list(reversed(vocab)))
    with pytest.raises(ValueError, match="strings"):
        align_embeddings(embeddings.to_numpy(), list(range(len(vocab))))


def test_dataset_roundtrip(tmp_path, dtm, vocab, embeddings):
    x = dtm.tolil()
    x[0, :] = 0
    save_dataset(str(tmp_path), x.tocsr(), vocab, test_bow=dtm[:5], word_embeddings=embeddings.to_numpy())
    dataset = BasicDataset(str(tmp_path))
    assert dataset.vocab == vocab
    assert dataset.vocab_size == len(vocab)
    assert dataset.train_bow.shape == (dtm.shape[0] - 1, len(vocab))
    assert dataset.test_bow.shape == (5, len(vocab))
    assert dataset.pretrained_WE.shape == (len(vocab), 5)
    assert len(dataset.tokencounts('train')) == dtm.shape[0] - 1


def test_dataset_rejects_blank_vocabulary_lines(tmp_path, dtm, vocab):
    save_dataset(str(tmp_path), dtm, vocab)
    lines = vocab[:3] + [''] + vocab[3:]
    (tmp_path / 'vocab.txt').write_text('\n'.join(lines) + '\n', encoding='utf-8')
    with pytest.raises(ValueError, match="line 4 is blank"):
        BasicDataset(str(tmp_path))
