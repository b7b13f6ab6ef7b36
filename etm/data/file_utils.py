import os  # 导入操作系统模块
import numpy as np  # 导入numpy库
import scipy.sparse  # 导入scipy稀疏矩阵模块


def make_dir(path):  # 定义创建目录函数
    os.makedirs(path, exist_ok=True)  # 创建目录，如果已存在则不报错


def read_text(path):  # 定义读取文本文件函数
    with open(path, 'r', encoding='utf-8', errors='ignore') as file:  # 打开文件进行读取
        return [line.strip() for line in file]  # 返回去除首尾空白的行


def save_text(texts, path):  # 定义保存文本文件函数
    with open(path, 'w', encoding='utf-8') as file:  # 打开文件进行写入
        file.writelines(f'{text.strip()}\n' for text in texts)  # 每行写入一个文本


def read_vocab(path):  # 定义读取词汇表函数
    """One term per line, line number = term id."""
    vocab = read_text(path)  # 逐行读取词项
    for i, term in enumerate(vocab, start=1):  # 遍历每一行
        if not term:  # 空行
            raise ValueError(f"{path}: line {i} is blank, every line should hold one term")  # 抛出数值错误
    return vocab  # 返回词汇表


def load_bow(path, dtype='float32'):  # 定义读取稀疏词袋矩阵函数
    return scipy.sparse.load_npz(path).tocsr().astype(dtype)  # 返回CSR格式词袋矩阵


def save_bow(bow, path):  # 定义保存稀疏词袋矩阵函数
    scipy.sparse.save_npz(path, scipy.sparse.csr_matrix(bow))  # 以npz格式保存


def load_embeddings(path, dtype='float32'):  # 定义读取词嵌入函数
    return scipy.sparse.load_npz(path).toarray().astype(dtype)  # 返回稠密词嵌入矩阵


def save_embeddings(embeddings, path):  # 定义保存词嵌入函数
    save_bow(np.asarray(embeddings), path)  # 与词袋矩阵相同的npz格式


def split_text_word(texts):  # 定义文本分词函数
    return [text.split() for text in texts]  # 返回分词后的文本列表
