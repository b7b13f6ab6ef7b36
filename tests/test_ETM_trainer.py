import math

import numpy as np
import pytest
import scipy.sparse
import torch

from etm import ETM, ETMTrainer, TrainingState
from etm.data.basic_dataset import TokenCounts, as_tokencounts, split_train_test
from etm.eva.perplexity import document_completion_perplexity
from etm.trainers.basic.ETM_trainer import LOSS_COLUMNS, get_lr


def make_optimizer(lr=1.0):
    return torch.optim.SGD([torch.nn.Parameter(torch.zeros(1))], lr=lr)


def test_fit_returns_loss_table_and_perplexities(model, dtm):
    optimizer = torch.optim.Adam(model.parameters(), lr=0.005, weight_decay=1.2e-6)
    trainer = ETMTrainer(model, optimizer, epochs=3, batch_size=8, seed=11)
    out = trainer.fit(dtm)

    loss = out['loss']
    assert list(loss.columns) == LOSS_COLUMNS
    # 40 documents -> 28 training documents -> 4 batches per epoch
    assert len(loss) == 3 * 4
    assert loss['batch_is_last'].sum() == 3
    assert list(loss['epoch'].unique()) == [1, 2, 3]
    assert np.all(np.isfinite(loss[['loss', 'kl_theta', 'nelbo']].to_numpy(dtype=float)))
    last = loss[loss['batch_is_last']]
    assert list(last['batch']) == [4, 4, 4]

    assert len(out['loss_test']) == 3
    assert all(math.isfinite(v) and v > 0 for v in out['loss_test'])
    assert trainer.best_val_ppl == min(out['loss_test'])
    assert out['loss_test'][trainer.best_epoch - 1] == trainer.best_val_ppl


def test_fit_is_reproducible_with_seed(vocab, dtm):
    results = []
    for _ in range(2):
        torch.manual_seed(5)
        model = ETM(k=3, embeddings=5, dim=16, vocab=vocab)
        trainer = ETMTrainer(model, epochs=2, batch_size=10, seed=3)
        results.append(trainer.fit(dtm)['loss_test'])
    assert results[0] == results[1]


def test_fit_with_clipping_and_without_normalization(model, dtm):
    trainer = ETMTrainer(model, epochs=2, batch_size=16, clip=0.5, normalize=False, seed=0)
    out = trainer.fit(dtm)
    assert len(out['loss_test']) == 2


def test_fit_drops_empty_documents(model, dtm):
    x = dtm.tolil()
    x[0, :] = 0
    trainer = ETMTrainer(model, epochs=1, batch_size=100, seed=0)
    out = trainer.fit(x.tocsr())
    # 39 documents left: int(39 * 0.3) = 11 held out, 28 used for training
    assert out['loss']['batch'].max() == 1


def test_fit_tokencounts(model, dtm, vocab):
    idx = split_train_test(dtm.shape[0], seed=2)
    train = as_tokencounts(dtm[idx['train']], vocab)
    test1 = as_tokencounts(dtm[idx['test1']], vocab)
    test2 = as_tokencounts(dtm[idx['test2']], vocab)
    trainer = ETMTrainer(model, epochs=2, batch_size=5, seed=2)
    out = trainer.fit_tokencounts(train, test1, test2)
    assert len(out['loss']) == 2 * math.ceil(len(train) / 5)
    assert len(out['loss_test']) == 2


def test_fit_rejects_dense_data(model, dtm):
    trainer = ETMTrainer(model, epochs=1)
    with pytest.raises(TypeError, match="sparse"):
        trainer.fit(dtm.toarray())


def test_rejects_wrong_optimizer(model):
    with pytest.raises(TypeError, match="optimizer"):
        ETMTrainer(model, optimizer="adam")


def test_rejects_bad_batch_size(model):
    with pytest.raises(ValueError):
        ETMTrainer(model, batch_size=0)


def test_trainer_reporting(model, dtm, vocab):
    trainer = ETMTrainer(model, epochs=1, batch_size=10, num_top_words=4, seed=0)
    trainer.fit(dtm)
    top_words = trainer.get_top_words()
    assert len(top_words) == 3
    assert all(len(words.split()) == 4 for words in top_words)
    assert trainer.get_beta().shape == (3, len(vocab))
    train_theta, test_theta = trainer.export_theta(dtm[:10], dtm[10:15])
    assert train_theta.shape == (10, 3)
    assert test_theta.shape == (5, 3)


def test_annealing_waits_for_the_window():
    optimizer = make_optimizer(lr=1.0)
    state = TrainingState(lr_anneal_factor=4, lr_anneal_nonmono=2)
    assert state.update(1, 10.0, optimizer) is False
    assert state.update(2, 9.0, optimizer) is False
    # worse than the best, but only 2 perplexities recorded so far
    assert state.update(3, 12.0, optimizer) is False
    assert get_lr(optimizer) == 1.0
    assert state.update(4, 13.0, optimizer) is True
    assert get_lr(optimizer) == 0.25
    assert state.best_epoch == 2
    assert state.best_val_ppl == 9.0
    assert state.all_val_ppls == [10.0, 9.0, 12.0, 13.0]


def test_annealing_never_raises_the_rate():
    optimizer = make_optimizer(lr=0.1)
    state = TrainingState(lr_anneal_factor=2, lr_anneal_nonmono=1)
    rates = [get_lr(optimizer)]
    for epoch, ppl in enumerate([50.0, 60.0, 40.0, 70.0, 80.0, 30.0, 90.0], start=1):
        state.update(epoch, ppl, optimizer)
        rates.append(get_lr(optimizer))
    assert all(b <= a for a, b in zip(rates, rates[1:]))
    assert len(state.all_val_ppls) == 7


def test_annealing_disabled_and_floor():
    optimizer = make_optimizer(lr=1.0)
    state = TrainingState(lr_anneal_factor=0, lr_anneal_nonmono=0)
    for epoch, ppl in enumerate([1.0, 2.0, 3.0], start=1):
        assert state.update(epoch, ppl, optimizer) is False
    assert get_lr(optimizer) == 1.0

    optimizer = make_optimizer(lr=1e-5)
    state = TrainingState(lr_anneal_factor=4, lr_anneal_nonmono=1)
    for epoch, ppl in enumerate([1.0, 2.0, 3.0], start=1):
        state.update(epoch, ppl, optimizer)
    assert get_lr(optimizer) == 1e-5


def test_perplexity_ignores_document_order(model, dtm, vocab):
    test1 = as_tokencounts(dtm[:12], vocab)
    test2 = as_tokencounts(dtm[12:24], vocab)
    ppl = document_completion_perplexity(model, test1, test2, batch_size=5)

    perm = np.random.default_rng(0).permutation(12)
    shuffled1 = TokenCounts([test1.tokens[i] for i in perm], [test1.counts[i] for i in perm], vocab)
    shuffled2 = TokenCounts([test2.tokens[i] for i in perm], [test2.counts[i] for i in perm], vocab)
    ppl_shuffled = document_completion_perplexity(model, shuffled1, shuffled2, batch_size=4)

    assert ppl > 0
    assert ppl == pytest.approx(ppl_shuffled, abs=0.1)
    assert ppl == round(ppl, 1)


def test_perplexity_uses_second_half_length(vocab):
    torch.manual_seed(0)
    model = ETM(k=2, embeddings=3, dim=4, vocab=vocab)
    x = as_tokencounts(scipy.sparse.csr_matrix(np.eye(len(vocab), dtype=np.float32)[:2]), vocab)
    doubled = TokenCounts(x.tokens, [2 * c for c in x.counts], vocab)
    # scaling every second-half count scales loss and length alike
    assert document_completion_perplexity(model, x, x, batch_size=2) == \
        document_completion_perplexity(model, x, doubled, batch_size=2)


def test_perplexity_requires_matching_vocabulary(model, dtm, vocab):
    test1 = as_tokencounts(dtm[:4], vocab)
    other = as_tokencounts(dtm[:4, :5], vocab[:5])
    with pytest.raises(ValueError):
        document_completion_perplexity(model, test1, other, batch_size=2)


def test_annealing_with_empty_window_never_anneals():
    optimizer = make_optimizer(lr=1.0)
    state = TrainingState(lr_anneal_factor=4, lr_anneal_nonmono=0)
    for epoch, ppl in enumerate([1.0, 2.0, 3.0, 4.0], start=1):
        assert state.update(epoch, ppl, optimizer) is False
    assert get_lr(optimizer) == 1.0


@pytest.mark.parametrize('factor', [0.5, 0.99])
def test_rejects_factor_that_would_raise_the_rate(model, factor):
    with pytest.raises(ValueError, match="lr_anneal_factor"):
        TrainingState(lr_anneal_factor=factor, lr_anneal_nonmono=1)
    with pytest.raises(ValueError, match="lr_anneal_factor"):
        ETMTrainer(model, lr_anneal_factor=factor)


def test_rejects_negative_window(model):
    with pytest.raises(ValueError, match="lr_anneal_nonmono"):
        ETMTrainer(model, lr_anneal_nonmono=-1)


def snapshot(model):
    return {name: value.clone() for name, value in model.state_dict().items()}


def assert_unchanged(model, before):
    for name, value in model.state_dict().items():
        assert torch.equal(value, before[name]), name


def test_fit_without_held_out_pairs_fails_before_training(model, vocab):
    tiny = scipy.sparse.csr_matrix(np.eye(3, len(vocab), dtype=np.float32))
    before = snapshot(model)
    trainer = ETMTrainer(model, epochs=1, batch_size=2, seed=0)
    with pytest.raises(ValueError, match="held-out"):
        trainer.fit(tiny)
    assert_unchanged(model, before)


def test_fit_with_everything_in_training_fails_before_training(model, dtm):
    before = snapshot(model)
    trainer = ETMTrainer(model, epochs=1, batch_size=8, seed=0)
    with pytest.raises(ValueError, match="held-out"):
        trainer.fit(dtm, train_pct=1.0)
    assert_unchanged(model, before)


def test_fit_tokencounts_rejects_halves_without_counts(model, dtm, vocab):
    train = as_tokencounts(dtm[:20], vocab)
    test1 = as_tokencounts(dtm[20:25], vocab)
    empty = [np.array([], dtype=np.int64)] * 5
    test2 = TokenCounts(empty, [np.array([], dtype=np.float32)] * 5, vocab)
    before = snapshot(model)
    trainer = ETMTrainer(model, epochs=1, batch_size=8)
    with pytest.raises(ValueError, match="held-out"):
        trainer.fit_tokencounts(train, test1, test2)
    assert_unchanged(model, before)
