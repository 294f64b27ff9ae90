import pytest

from ngramlm import LangModel, Vocabulary


CAT_VOCAB = ["<s>", "</s>", "<UNK>", "the", "cat", "sat"]

CORPUS = [
    "the cat sat on the mat",
    "the dog sat on the log",
    "a cat saw the dog",
    "the cat ate",
    "",
    "a dog ate the cat food",
]

CORPUS_VOCAB = ["<s>", "</s>", "<UNK>", "the", "cat", "sat", "on", "mat",
                "dog", "log", "a", "saw", "ate"]


def write_lines(path, lines):
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path


@pytest.fixture
def cat_vocab_file(tmp_path):
    return write_lines(tmp_path / "vocab.txt", CAT_VOCAB)


@pytest.fixture
def cat_corpus_file(tmp_path):
    return write_lines(tmp_path / "train.txt", ["the cat sat"])


@pytest.fixture
def vocab_file(tmp_path):
    return write_lines(tmp_path / "corpus_vocab.txt", CORPUS_VOCAB)


@pytest.fixture
def corpus_file(tmp_path):
    return write_lines(tmp_path / "corpus.txt", CORPUS)


@pytest.fixture
def cat_model():
    """Bigram model trained on the single sentence 'the cat sat'."""
    model = LangModel(Vocabulary(CAT_VOCAB), n=2)
    model.train([["the", "cat", "sat"]])
    return model


@pytest.fixture(params=[1, 2, 3, 4])
def trained_model(request):
    model = LangModel(Vocabulary(CORPUS_VOCAB), n=request.param)
    model.train(line.split() for line in CORPUS)
    return model
