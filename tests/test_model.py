import math

import pytest

from ngramlm import (
    CountFileError, FrozenModelError, InvalidArgument, LangModel, ModelConfig,
    VocabError, Vocabulary
)
from ngramlm.corpus import read_sentences

from .conftest import CAT_VOCAB, CORPUS, CORPUS_VOCAB, write_lines


def ids(model, tokens):
    return [model.vocab.index_of(t) for t in tokens]


def histories(model):
    return [key for key, _ in model.hist_counts.items()]


# Construction

@pytest.mark.parametrize("missing", ["<s>", "</s>", "<UNK>"])
def test_missing_reserved_token_raises(missing):
    tokens = [t for t in CAT_VOCAB if t != missing]
    with pytest.raises(VocabError):
        LangModel(Vocabulary(tokens), n=2)


def test_custom_reserved_tokens():
    vocab = Vocabulary(["BOS", "EOS", "OOV", "x"])
    model = LangModel(vocab, n=2, bos="BOS", eos="EOS", unk="OOV")
    assert (model.bos_idx, model.eos_idx, model.unk_idx) == (1, 2, 3)


def test_order_must_be_positive():
    with pytest.raises(InvalidArgument):
        LangModel(Vocabulary(CAT_VOCAB), n=0)


# Counting

def test_cat_sentence_padding(cat_model):
    assert cat_model.encode(["the", "cat", "sat"]) == ids(
        cat_model, ["<s>", "the", "cat", "sat", "</s>"])


def test_cat_sentence_bigram_counts(cat_model):
    for bigram in (["<s>", "the"], ["the", "cat"], ["cat", "sat"], ["sat", "</s>"]):
        assert cat_model.pred_counts.count(ids(cat_model, bigram)) == 1
    assert len(cat_model.pred_counts.keys_of_length(2)) == 4


def test_cat_sentence_history_counts(cat_model):
    cat = ids(cat_model, ["cat"])
    # One observation per predicted token: the, cat, sat, </s>
    assert cat_model.hist_counts.count([]) == 4
    assert cat_model.hist_one_plus_counts.count([]) == 4
    assert cat_model.hist_counts.count(cat) == 1
    assert cat_model.hist_one_plus_counts.count(cat) == 1
    assert cat_model.backoff_weight(cat) == pytest.approx(0.5)


def test_begin_marker_is_never_predicted(cat_model):
    assert cat_model.pred_counts.count(ids(cat_model, ["<s>"])) == 0


def test_end_marker_is_never_a_history(cat_model):
    assert cat_model.hist_counts.count(ids(cat_model, ["</s>"])) == 0


def test_cat_sentence_probability(cat_model):
    sat = cat_model.get_probability(ids(cat_model, ["sat"]))
    # λ(()) = 4 / (4 + 4); P_ML(sat) = 1/4; V = 6
    assert sat == pytest.approx(0.5 * 0.25 + 0.5 / 6)
    assert cat_model.get_probability(ids(cat_model, ["cat", "sat"])) == pytest.approx(
        0.5 * 1.0 + 0.5 * sat)


def test_repeated_continuation_counts_once_in_one_plus():
    model = LangModel(Vocabulary(CAT_VOCAB), n=2)
    model.train([["the", "cat"], ["the", "cat"], ["the", "sat"]])
    the = ids(model, ["the"])
    assert model.hist_counts.count(the) == 3
    assert model.hist_one_plus_counts.count(the) == 2
    assert model.backoff_weight(the) == pytest.approx(3 / 5)


def test_oov_tokens_map_to_unk():
    model = LangModel(Vocabulary(CAT_VOCAB), n=2)
    stats = model.train([["the", "dog"]])
    assert stats["oov_tokens"] == 1
    assert model.pred_counts.count(ids(model, ["the", "<UNK>"])) == 1


def test_oov_count_excludes_literal_unk():
    model = LangModel(Vocabulary(CAT_VOCAB), n=2)
    stats = model.train([["dog", "<UNK>", "dog"], ["bird"]] * 50)
    assert stats["oov_tokens"] == 150
    assert model.pred_counts.count(ids(model, ["<UNK>"])) == 200


def test_ids_for_maps_unknown_and_epsilon_to_unk(cat_model):
    unk = cat_model.unk_idx
    assert cat_model.ids_for(["cat", "dog", "<epsilon>"]) == [ids(cat_model, ["cat"])[0], unk, unk]
    assert cat_model.ids_for([]) == []


def test_flow_conservation(trained_model):
    vocab_ids = trained_model.vocab.ids()
    for history in histories(trained_model):
        continuations = sum(trained_model.pred_counts.count(history + (w,)) for w in vocab_ids)
        assert continuations == trained_model.hist_counts.count(history)


def test_diversity_bound(trained_model):
    vocab_ids = trained_model.vocab.ids()
    for history in histories(trained_model):
        distinct = sum(1 for w in vocab_ids if trained_model.pred_counts.count(history + (w,)))
        assert trained_model.hist_one_plus_counts.count(history) == distinct
        assert 0 <= distinct <= trained_model.hist_counts.count(history)


def test_history_lengths_bounded(trained_model):
    assert all(len(h) <= trained_model.n - 1 for h in histories(trained_model))
    assert all(1 <= len(k) <= trained_model.n for k, _ in trained_model.pred_counts.items())


# Estimation

def test_probability_range(trained_model):
    vocab_ids = trained_model.vocab.ids()
    contexts = [()] + [key[:-1] for key, _ in trained_model.pred_counts.items()]
    for history in contexts:
        for w in vocab_ids:
            p = trained_model.get_probability(history + (w,))
            assert 0.0 < p <= 1.0


def test_normalization(trained_model):
    model = trained_model
    vocab_ids = model.vocab.ids()
    unseen = ids(model, ["mat", "mat", "mat"])[:model.n - 1]
    seen = ids(model, ["<s>", "<s>", "the"])[-(model.n - 1):] if model.n > 1 else []
    for history in ([], seen, unseen):
        total = sum(model.get_probability(list(history) + [w]) for w in vocab_ids)
        assert total == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("length", [0, 3])
def test_invalid_ngram_length(cat_model, length):
    with pytest.raises(InvalidArgument):
        cat_model.get_probability([4] * length)


def test_invalid_length_does_not_change_state(cat_model):
    before = cat_model.pred_counts.to_dict()
    with pytest.raises(InvalidArgument):
        cat_model.get_probability([])
    assert cat_model.pred_counts.to_dict() == before


def test_unseen_history_defers_to_backoff(cat_model):
    sat = ids(cat_model, ["sat"])
    unseen = ids(cat_model, ["<UNK>", "sat"])
    assert cat_model.backoff_weight(ids(cat_model, ["<UNK>"])) == 0.0
    assert cat_model.get_probability(unseen) == cat_model.get_probability(sat)


def test_empty_corpus_gives_uniform():
    vocab = Vocabulary(CORPUS_VOCAB)
    model = LangModel(vocab, n=3)
    stats = model.train([])
    assert stats["num_sentences"] == 0
    assert len(model.pred_counts) == len(model.hist_counts) == len(model.hist_one_plus_counts) == 0
    for ngram in ([4], [4, 5], [1, 1, 4]):
        assert model.get_probability(ngram) == 1.0 / vocab.size()


def test_determinism():
    def build():
        model = LangModel(Vocabulary(CORPUS_VOCAB), n=3)
        model.train(line.split() for line in CORPUS)
        return model

    a, b = build(), build()
    assert a.pred_counts == b.pred_counts
    assert a.hist_counts == b.hist_counts
    assert a.hist_one_plus_counts == b.hist_one_plus_counts
    for key, _ in a.pred_counts.items():
        assert a.get_probability(key) == b.get_probability(key)


def test_unigram_model_uses_empty_history_only():
    model = LangModel(Vocabulary(CAT_VOCAB), n=1)
    model.train([["the", "cat", "sat"]])
    assert histories(model) == [()]
    assert model.encode(["the"]) == ids(model, ["the", "</s>"])
    assert model.get_probability(ids(model, ["the"])) == pytest.approx(0.5 * 0.25 + 0.5 / 6)


# Sentence scoring

def test_sentence_log_probability(cat_model):
    expected = sum(
        math.log(cat_model.get_probability(ids(cat_model, pair)))
        for pair in (["<s>", "the"], ["the", "cat"], ["cat", "sat"], ["sat", "</s>"])
    )
    assert cat_model.sentence_log_probability(["the", "cat", "sat"]) == pytest.approx(expected)


def test_perplexity(cat_model):
    log_prob = cat_model.sentence_log_probability(["the", "cat", "sat"])
    assert cat_model.perplexity([["the", "cat", "sat"]]) == pytest.approx(math.exp(-log_prob / 4))


def test_perplexity_of_nothing_raises(cat_model):
    with pytest.raises(InvalidArgument):
        cat_model.perplexity([])


def test_score_tokens(cat_model):
    assert cat_model.score_tokens(["cat", "sat"]) == cat_model.get_probability(
        ids(cat_model, ["cat", "sat"]))
    assert cat_model.score_tokens(["dog"]) == cat_model.get_probability([cat_model.unk_idx])


# Lifecycle

def test_frozen_after_training(cat_model):
    assert cat_model.is_frozen
    with pytest.raises(FrozenModelError):
        cat_model.count_sentence_ngrams(cat_model.encode(["the"]))
    with pytest.raises(FrozenModelError):
        cat_model.train([["the"]])


def test_merge_matches_sequential_training():
    sentences = [line.split() for line in CORPUS]
    whole = LangModel(Vocabulary(CORPUS_VOCAB), n=3)
    whole.train(sentences)

    merged = LangModel(Vocabulary(CORPUS_VOCAB), n=3)
    for shard in (sentences[:3], sentences[3:]):
        part = LangModel(Vocabulary(CORPUS_VOCAB), n=3)
        part.train(shard)
        merged.merge(part)
    merged.freeze()

    assert merged.pred_counts == whole.pred_counts
    assert merged.hist_counts == whole.hist_counts
    assert merged.hist_one_plus_counts == whole.hist_one_plus_counts

    vocab_ids = merged.vocab.ids()
    for history in histories(merged):
        distinct = sum(1 for w in vocab_ids if merged.pred_counts.count(history + (w,)))
        assert merged.hist_one_plus_counts.count(history) == distinct


def test_merge_counts_shared_continuations_once():
    sentence = ["the", "cat", "sat"]
    merged = LangModel(Vocabulary(CAT_VOCAB), n=2)
    for _ in range(2):
        part = LangModel(Vocabulary(CAT_VOCAB), n=2)
        part.train([sentence])
        merged.merge(part)

    the = ids(merged, ["the"])
    assert merged.hist_counts.count(the) == 2
    assert merged.hist_one_plus_counts.count(the) == 1
    assert merged.hist_one_plus_counts.count([]) == 4
    assert merged.backoff_weight(the) == pytest.approx(2 / 3)


def test_merge_rejects_incompatible_models(cat_model):
    target = LangModel(Vocabulary(CAT_VOCAB), n=3)
    with pytest.raises(InvalidArgument):
        target.merge(cat_model)


# Files

def test_from_config_trains_and_writes_counts(cat_vocab_file, cat_corpus_file, tmp_path):
    count_file = tmp_path / "counts.txt"
    config = ModelConfig(vocab=str(cat_vocab_file), train=str(cat_corpus_file),
                         n=2, count_file=str(count_file))
    model = LangModel.from_config(config)

    assert model.is_frozen
    lines = count_file.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "# Pred counts."
    assert "# Hist counts." in lines
    assert "# Hist 1+ counts." in lines
    assert "cat sat 1" in lines
    hist_section = lines[lines.index("# Hist counts."):lines.index("# Hist 1+ counts.")]
    assert "<epsilon> 4" in hist_section
    assert model.get_probability(ids(model, ["cat", "sat"])) == pytest.approx(
        0.5 + 0.5 * (0.5 * 0.25 + 0.5 / 6))


def test_count_file_round_trip(vocab_file, corpus_file, tmp_path):
    vocab = Vocabulary.from_file(str(vocab_file))
    model = LangModel(vocab, n=3)
    model.train(read_sentences(str(corpus_file)))
    count_file = tmp_path / "counts.txt"
    model.write_counts(str(count_file))

    loaded = LangModel.read_counts(str(count_file), vocab, n=3)

    assert loaded.is_frozen
    assert loaded.pred_counts == model.pred_counts
    assert loaded.hist_counts == model.hist_counts
    assert loaded.hist_one_plus_counts == model.hist_one_plus_counts


def test_read_counts_rejects_higher_order(cat_model, tmp_path):
    count_file = tmp_path / "counts.txt"
    cat_model.write_counts(str(count_file))
    with pytest.raises(CountFileError):
        LangModel.read_counts(str(count_file), cat_model.vocab, n=1)


def test_read_counts_requires_headers(tmp_path):
    path = write_lines(tmp_path / "counts.txt", ["the cat 1"])
    with pytest.raises(CountFileError):
        LangModel.read_counts(str(path), Vocabulary(CAT_VOCAB), n=2)


def test_blank_lines_are_empty_sentences(cat_vocab_file, tmp_path):
    corpus = write_lines(tmp_path / "train.txt", ["the", ""])
    model = LangModel(Vocabulary.from_file(str(cat_vocab_file)), n=2)
    stats = model.train_file(str(corpus))
    assert stats["num_sentences"] == 2
    assert model.pred_counts.count(ids(model, ["<s>", "</s>"])) == 1


def test_missing_training_file(cat_vocab_file, tmp_path):
    config = ModelConfig(vocab=str(cat_vocab_file), train=str(tmp_path / "missing.txt"), n=2)
    with pytest.raises(OSError):
        LangModel.from_config(config)
