import numpy as np  # 导入numpy库
from gensim.corpora import Dictionary  # 导入词典
from gensim.models import CoherenceModel  # 导入一致性模型
from scipy.sparse import issparse  # 导入稀疏矩阵检查函数
from ..data.basic_dataset import as_tokencounts  # 导入词-计数转换函数
from ..data.file_utils import split_text_word  # 导入文本分词工具
from typing import List  # 导入类型提示


def bow_to_texts(bow, vocab):  # 定义词袋转伪文本函数
    """Turns a sparse document-term matrix into token lists, every term
    repeated as many times as it is counted (rounded up to at least once)."""
    x = as_tokencounts(bow, vocab)  # 转换为词-计数表示
    texts = list()  # 初始化文本列表
    for tokens, counts in zip(x.tokens, x.counts):  # 遍历每篇文档
        reps = np.maximum(np.rint(counts), 1).astype(int)  # 每个词的重复次数
        texts.append([vocab[t] for t, r in zip(tokens, reps) for _ in range(r)])  # 展开为词序列
    return texts  # 返回伪文本列表


def _coherence(  # 定义主题一致性函数
        reference_corpus,  # 参考语料库：文本列表或稀疏文档-词矩阵
        vocab: List[str],  # 词汇表
        top_words: List[str],  # 主题词列表
        coherence_type='c_v',  # 一致性类型，默认c_v
        topn=20  # 前n个词，默认20
    ):
    split_top_words = split_text_word(top_words)  # 分词主题词
    if issparse(reference_corpus):  # 如果参考语料是稀疏矩阵
        split_reference_corpus = bow_to_texts(reference_corpus, vocab)  # 转换为伪文本
    else:  # 否则为文本列表
        split_reference_corpus = split_text_word(reference_corpus)  # 分词参考语料库
    dictionary = Dictionary([[term] for term in vocab])  # 创建词典

    topn = min(topn, min(len(words) for words in split_top_words))  # 不超过最短主题词列表长度
    cm = CoherenceModel(  # 创建一致性模型
        texts=split_reference_corpus,  # 文本
        dictionary=dictionary,  # 词典
        topics=split_top_words,  # 主题
        topn=topn,  # 前n个词
        coherence=coherence_type,  # 一致性类型
    )
    cv_per_topic = cm.get_coherence_per_topic()  # 获取每个主题的一致性
    score = np.mean(cv_per_topic)  # 计算平均一致性分数

    return score  # 返回一致性分数


def model_coherence(trainer, reference_bow, coherence_type='c_npmi', topn=10):  # 定义训练器主题一致性函数
    top_words = trainer.get_top_words(topn)  # 获取主题词
    return _coherence(reference_bow, trainer.model.vocab, top_words, coherence_type, topn)  # 返回平均一致性分数
