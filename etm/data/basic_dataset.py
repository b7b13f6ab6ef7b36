import os  # 导入操作系统模块
import torch  # 导入PyTorch库
import numpy as np  # 导入numpy库
from scipy.sparse import issparse  # 导入稀疏矩阵检查函数
from . import file_utils  # 导入文件工具模块
from .. import config  # 导入默认配置
from typing import List, Optional, Sequence  # 导入类型提示


class TokenCounts:  # 定义词-计数稀疏行表示
    '''
        Sparse row encoding of a corpus: for every document the ordered
        indices of the terms it contains and their parallel counts.
    '''
    def __init__(self, tokens: List[np.ndarray], counts: List[np.ndarray], vocab: List[str]):  # 初始化方法
        if len(tokens) != len(counts):  # 词索引与词频数量不一致
            raise ValueError(f"got {len(tokens)} token rows and {len(counts)} count rows")  # 抛出数值错误
        self.tokens = tokens  # 每篇文档出现的词索引
        self.counts = counts  # 与tokens对齐的词频
        self.vocab = vocab  # 词汇表

    def __len__(self):  # 文档数量
        return len(self.tokens)  # 返回文档数量

    @property  # 属性装饰器
    def vocab_size(self):  # 词汇表大小
        return len(self.vocab)  # 返回词汇表大小

    def doc_lengths(self):  # 每篇文档的总词数
        return np.array([c.sum() for c in self.counts], dtype=np.float64)  # 返回文档长度数组


def check_sparse(x):  # 定义稀疏矩阵检查函数
    if not issparse(x):  # 如果不是稀疏矩阵
        raise TypeError(f"expected a scipy.sparse document-term matrix, got {type(x).__name__}")  # 抛出类型错误


def row_sums(x):  # 定义按行求和函数
    return np.asarray(x.sum(axis=1)).ravel()  # 返回每行总数


def remove_empty_docs(x, doc_ids=None):  # 定义移除空文档函数
    """Drops the rows of the sparse matrix ``x`` without any count and
    returns the filtered matrix with the matching document ids."""
    check_sparse(x)  # 检查输入类型
    x = x.tocsr()  # 转换为CSR格式
    if doc_ids is None:  # 如果没有提供文档ID
        doc_ids = np.arange(x.shape[0])  # 使用行号作为文档ID
    doc_ids = np.asarray(doc_ids)  # 转换为数组
    if len(doc_ids) != x.shape[0]:  # 文档ID数量与行数不一致
        raise ValueError(f"got {len(doc_ids)} document ids for {x.shape[0]} documents")  # 抛出数值错误
    keep = row_sums(x) > 0  # 非空行掩码
    return x[keep], doc_ids[keep]  # 返回过滤后的矩阵和文档ID


def as_tokencounts(x, vocab):  # 定义稀疏矩阵转词-计数表示函数
    check_sparse(x)  # 检查输入类型
    if x.shape[1] != len(vocab):  # 列数与词汇表大小不一致
        raise ValueError(f"document-term matrix has {x.shape[1]} columns but the vocabulary has {len(vocab)} terms")  # 抛出数值错误
    x = x.tocsr().astype(np.float32)  # 转换为CSR格式
    x.sum_duplicates()  # 合并重复项并排序列索引
    tokens = list()  # 初始化词索引列表
    counts = list()  # 初始化词频列表
    for i in range(x.shape[0]):  # 遍历每篇文档
        start, end = x.indptr[i], x.indptr[i + 1]  # 该行在CSR中的区间
        data = x.data[start:end]  # 该行的非零值
        keep = data > 0  # 只保留正计数
        tokens.append(x.indices[start:end][keep].astype(np.int64))  # 添加词索引
        counts.append(data[keep])  # 添加词频
    return TokenCounts(tokens=tokens, counts=counts, vocab=list(vocab))  # 返回词-计数表示


def get_batch(tokens, counts, ind, vocab_size):  # 定义构建稠密批次函数
    """Builds a dense ``len(ind) x vocab_size`` count matrix for the
    documents listed in ``ind`` (any order, no need to be contiguous)."""
    ind = np.asarray(ind, dtype=np.int64).reshape(-1)  # 转换批次索引
    if len(ind) > 0 and (ind.min() < 0 or ind.max() >= len(tokens)):  # 索引越界
        raise IndexError(f"document index out of range for a corpus of {len(tokens)} documents")  # 抛出索引错误
    data_batch = torch.zeros((len(ind), vocab_size))  # 初始化稠密批次
    if len(ind) == 0:  # 空批次
        return data_batch  # 直接返回
    doc_tokens = [tokens[i] for i in ind]  # 批次内每篇文档的词索引
    doc_counts = [counts[i] for i in ind]  # 批次内每篇文档的词频
    rows = np.repeat(np.arange(len(ind)), [len(t) for t in doc_tokens])  # 行索引
    cols = np.concatenate(doc_tokens).astype(np.int64)  # 列索引
    vals = np.concatenate(doc_counts).astype(np.float32)  # 计数值
    data_batch[torch.from_numpy(rows), torch.from_numpy(cols)] = torch.from_numpy(vals)  # 填充计数
    return data_batch  # 返回稠密批次


def split_train_test(num_docs, train_pct=config.TRAIN_PCT, seed=None):  # 定义训练/验证划分函数
    """Randomly partitions ``range(num_docs)`` into a training set and two
    disjoint validation halves whose sizes differ by at most one."""
    if not 0 < train_pct <= 1:  # 训练集比例非法
        raise ValueError(f"train_pct should be in (0, 1], got {train_pct}")  # 抛出数值错误
    rng = np.random.default_rng(seed)  # 创建随机数生成器
    idx = np.arange(num_docs)  # 全部文档索引
    num_test = int(num_docs * (1 - train_pct))  # 验证集大小
    tst = rng.choice(idx, size=num_test, replace=False)  # 抽取验证集
    tst1 = rng.choice(tst, size=(num_test + 1) // 2, replace=False)  # 抽取第一个验证半集
    tst2 = np.setdiff1d(tst, tst1)  # 剩余为第二个验证半集
    trn = np.setdiff1d(idx, tst)  # 剩余为训练集
    return {'train': np.sort(trn), 'test1': np.sort(tst1), 'test2': np.sort(tst2)}  # 返回划分结果


def align_embeddings(embeddings, vocab=None):  # 定义词嵌入与词汇表对齐检查函数
    """Accepts a ``pandas.DataFrame`` indexed by term or a 2-d array plus a
    vocabulary, validates the alignment and returns ``(matrix, vocab)``."""
    if vocab is None:  # 没有提供词汇表
        if not hasattr(embeddings, 'index'):  # 不是带行名的表格
            raise ValueError("provide in vocab the terms of the embedding rows")  # 抛出数值错误
        vocab = list(embeddings.index)  # 使用行名作为词汇表
    vocab = list(vocab)  # 转换为列表
    check_vocab(vocab)  # 检查词汇表
    matrix = np.asarray(embeddings, dtype=np.float32)  # 转换为浮点矩阵
    if matrix.ndim != 2:  # 维度不正确
        raise ValueError(f"embeddings should be a vocabulary x dimension matrix, got {matrix.ndim} dimensions")  # 抛出数值错误
    if len(vocab) != matrix.shape[0]:  # 词汇表长度与嵌入行数不一致
        raise ValueError(f"vocabulary length mismatch: {len(vocab)} terms for {matrix.shape[0]} embedding rows")  # 抛出数值错误
    if hasattr(embeddings, 'index') and list(embeddings.index) != vocab:  # 行名顺序与词汇表不一致
        raise ValueError("vocabulary/embedding ordering mismatch: vocab should equal the row names of embeddings")  # 抛出数值错误
    return matrix, vocab  # 返回嵌入矩阵和词汇表


def check_vocab(vocab):  # 定义词汇表检查函数
    if not all(isinstance(term, str) for term in vocab):  # 存在非字符串词
        raise ValueError("provide in vocab a sequence of strings")  # 抛出数值错误
    if len(set(vocab)) != len(vocab):  # 存在重复词
        raise ValueError("vocab should contain unique terms")  # 抛出数值错误


class BasicDataset:  # 定义基础数据集类
    def __init__(self,  # 初始化方法
                 dataset_dir,  # 数据集目录
                 read_embeddings=True,  # 是否读取预训练词嵌入，默认是
                 verbose=False  # 详细输出，默认关闭
                ):
        # train_bow: NxV  # 训练词袋矩阵：文档数x词汇表大小
        # test_bow: Nxv  # 测试词袋矩阵：文档数x词汇表大小
        # word_emeddings: VxD  # 词嵌入矩阵：词汇表大小x嵌入维度
        # vocab: V, ordered by word id.  # 词汇表：按词ID排序

        self.load_data(dataset_dir, read_embeddings)  # 加载数据
        self.vocab_size = len(self.vocab)  # 计算词汇表大小

        if self.train_bow.shape[1] != self.vocab_size:  # 列数与词汇表不一致
            raise ValueError(f"train_bow has {self.train_bow.shape[1]} columns but vocab.txt has {self.vocab_size} terms")  # 抛出数值错误

        self.train_bow, self.train_ids = remove_empty_docs(self.train_bow)  # 移除空训练文档
        if self.test_bow is not None:  # 如果有测试集
            self.test_bow, self.test_ids = remove_empty_docs(self.test_bow)  # 移除空测试文档

        if verbose:  # 如果需要详细输出
            print("train_size: ", self.train_bow.shape[0])  # 打印训练集大小
            if self.test_bow is not None:  # 如果有测试集
                print("test_size: ", self.test_bow.shape[0])  # 打印测试集大小
            print("vocab_size: ", self.vocab_size)  # 打印词汇表大小
            print("average length: {:.3f}".format(self.train_bow.sum() / self.train_bow.shape[0]))  # 打印平均文档长度

    def load_data(self, path, read_embeddings):  # 加载数据方法
        self.train_bow = file_utils.load_bow(f"{path}/train_bow.npz")  # 加载训练词袋数据
        self.vocab = file_utils.read_vocab(f"{path}/vocab.txt")  # 读取词汇表

        self.test_bow = None  # 测试词袋数据默认为空
        if os.path.exists(f'{path}/test_bow.npz'):  # 如果存在测试集
            self.test_bow = file_utils.load_bow(f"{path}/test_bow.npz")  # 加载测试词袋数据

        self.pretrained_WE = None  # 预训练词嵌入默认为空
        if read_embeddings and os.path.exists(f'{path}/word_embeddings.npz'):  # 如果需要并存在预训练词嵌入
            self.pretrained_WE = file_utils.load_embeddings(f"{path}/word_embeddings.npz")  # 加载预训练词嵌入

    def tokencounts(self, split='train'):  # 获取词-计数表示方法
        bow = self.train_bow if split == 'train' else self.test_bow  # 选择数据集
        return as_tokencounts(bow, self.vocab)  # 返回词-计数表示


def save_dataset(path, train_bow, vocab, test_bow=None, word_embeddings: Optional[Sequence] = None):  # 定义保存数据集函数
    file_utils.make_dir(path)  # 创建目录
    check_sparse(train_bow)  # 检查输入类型
    file_utils.save_bow(train_bow, f"{path}/train_bow.npz")  # 保存训练词袋数据
    file_utils.save_text(vocab, f'{path}/vocab.txt')  # 保存词汇表
    if test_bow is not None:  # 如果有测试集
        file_utils.save_bow(test_bow, f"{path}/test_bow.npz")  # 保存测试词袋数据
    if word_embeddings is not None:  # 如果有词嵌入
        file_utils.save_embeddings(word_embeddings, f"{path}/word_embeddings.npz")  # 保存词嵌入
