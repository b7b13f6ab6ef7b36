import numbers  # 导入数值类型检查模块
import numpy as np  # 导入numpy库
import pandas as pd  # 导入pandas库
import torch  # 导入PyTorch库
import torch.nn as nn  # 导入神经网络模块
import torch.nn.functional as F  # 导入函数式接口

from ... import config  # 导入默认配置
from ...data.basic_dataset import align_embeddings, as_tokencounts, check_sparse, check_vocab, get_batch, row_sums  # 导入数据工具
from ...utils._utils import get_top_terms  # 导入主题词工具
from ..Encoder import MLPEncoder, reparameterize  # 导入变分编码器和重参数化


def normalize_bows(bows, normalize=True):  # 定义词袋归一化函数
    if not normalize:  # 如果不需要归一化
        return bows  # 直接返回原始计数
    sums = bows.sum(1, keepdim=True)  # 每篇文档的总词数
    sums = torch.where(sums > 0, sums, torch.ones_like(sums))  # 空文档保持为零向量
    return bows / sums  # 返回归一化词袋


class ETM(nn.Module):  # 定义嵌入主题模型类
    '''
        Topic Modeling in Embedding Spaces. TACL 2020  # 嵌入空间中的主题建模，TACL 2020

        Adji B. Dieng, Francisco J. R. Ruiz, David M. Blei.  # 作者信息

        Word embeddings ``rho`` are stored as a vocab_size x embed_size table,
        topic embeddings ``alphas`` as a linear map embed_size -> num_topics, so
        the topic-word logits are always ``alphas(rho)`` (vocab_size x num_topics).

        Arguments:
            k: An integer, the number of topics.
            embeddings: Either a vocab_size x embed_size table of pretrained word
                embeddings (``pandas.DataFrame`` indexed by term or an array),
                which is kept frozen, or an integer with the dimension of word
                embeddings trained together with the model.
            dim: An integer, width of the hidden layers of the variational encoder.
            activation: One of 'relu', 'tanh', 'softplus', 'rrelu', 'leakyrelu',
                'elu', 'selu', 'glu'.
            dropout: A float in [0, 1), dropout on the variational encoder.
            vocab: A sequence of unique strings. Defaults to the row names of
                ``embeddings``.
    '''
    def __init__(self,  # 初始化方法
                 k=config.DEFAULT_NUM_TOPICS,  # 主题数量
                 embeddings=None,  # 预训练词嵌入或嵌入维度
                 dim=config.DEFAULT_EN_UNITS,  # 变分编码器隐藏层宽度
                 activation=config.DEFAULT_ACTIVATION,  # 激活函数
                 dropout=config.DEFAULT_DROPOUT,  # dropout率
                 vocab=None  # 词汇表
                ):
        super().__init__()  # 调用父类初始化

        if not isinstance(k, numbers.Integral) or k <= 0:  # 主题数量非法
            raise ValueError(f"k should be a positive integer, got {k!r}")  # 抛出数值错误
        if embeddings is None:  # 如果没有提供词嵌入
            embeddings = config.DEFAULT_EMBED_SIZE  # 使用默认嵌入维度

        if isinstance(embeddings, numbers.Integral):  # 如果提供的是嵌入维度
            if vocab is None:  # 没有词汇表
                raise ValueError("provide in vocab a sequence of strings")  # 抛出数值错误
            vocab = list(vocab)  # 转换为列表
            check_vocab(vocab)  # 检查词汇表
            self.train_embeddings = True  # 训练词嵌入
            rho_size = int(embeddings)  # 嵌入维度
            rho = torch.randn((len(vocab), rho_size))  # 随机初始化词嵌入
        else:  # 否则为预训练词嵌入
            matrix, vocab = align_embeddings(embeddings, vocab)  # 检查并对齐词嵌入与词汇表
            self.train_embeddings = False  # 冻结词嵌入
            rho_size = matrix.shape[1]  # 嵌入维度
            rho = torch.from_numpy(matrix).float()  # 转换为张量

        self.vocab = vocab  # 词汇表
        self.num_topics = int(k)  # 主题数量
        self.vocab_size = len(vocab)  # 词汇表大小
        self.t_hidden_size = dim  # 变分编码器隐藏层宽度
        self.rho_size = rho_size  # 嵌入维度
        self.enc_drop = dropout  # dropout率

        ## define the word embedding matrix \rho  # 定义词嵌入矩阵rho
        self.rho = nn.Parameter(rho, requires_grad=self.train_embeddings)  # 词嵌入，预训练时不参与训练

        ## define the matrix containing the topic embeddings  # 定义主题嵌入矩阵
        self.alphas = nn.Linear(rho_size, self.num_topics, bias=False)  # 主题嵌入

        ## define variational distribution for \theta_{1:D} via amortizartion  # 通过摊销推理定义theta的变分分布
        self.q_theta = MLPEncoder(self.vocab_size, self.num_topics, dim, dropout, activation)  # 变分编码器
        self.activation = self.q_theta.activation.value  # 激活函数名称

    def extra_repr(self):  # 定义模型摘要
        return '\n'.join([  # 拼接摘要信息
            'Embedding Topic Model',
            f' - topics: {self.num_topics}',
            f' - vocabulary size: {self.vocab_size}',
            f' - embedding dimension: {self.rho_size}',
            f' - variational distribution dimension: {self.t_hidden_size}',
            f' - variational distribution activation function: {self.activation}',
        ])

    @property  # 属性装饰器
    def word_embeddings(self):  # 定义词嵌入属性
        return self.rho  # 返回词嵌入

    @property  # 属性装饰器
    def topic_embeddings(self):  # 定义主题嵌入属性
        return self.alphas.weight  # 返回主题嵌入，形状为 K x E

    def encode(self, bows, training=False):  # 定义编码方法
        """Returns mu_theta, logsigma_theta and the batch mean KL to N(0, I)."""
        return self.q_theta(bows, training=training)  # 返回变分分布参数和KL散度

    def get_beta(self):  # 定义获取主题-词分布方法
        logit = self.alphas(self.rho)  # 计算词-主题logits，形状为 V x K
        beta = F.softmax(logit, dim=0).transpose(0, 1)  # 在词汇维度上softmax并转置为 K x V
        return beta  # 返回主题-词分布

    def get_theta(self, normalized_bows, training=False):  # 定义获取主题分布方法
        mu_theta, logsigma_theta, kld_theta = self.encode(normalized_bows, training=training)  # 编码获取均值、对数方差、KL散度
        z = reparameterize(mu_theta, logsigma_theta, training)  # 重参数化
        theta = F.softmax(z, dim=-1)  # 应用softmax归一化
        return theta, kld_theta  # 返回主题分布和KL散度

    @staticmethod  # 静态方法装饰器
    def decode(theta, beta, eps=config.LOG_EPS):  # 定义解码方法
        res = torch.mm(theta, beta)  # 计算词分布
        preds = torch.log(res + eps)  # 加下界后取对数
        return preds  # 返回对数概率

    def forward(self, bows, normalized_bows, training=False, theta=None, aggregate=True):  # 定义前向传播方法
        if theta is None:  # 如果没有给定主题分布
            theta, kld_theta = self.get_theta(normalized_bows, training=training)  # 获取主题分布和KL散度
        else:  # 否则
            kld_theta = None  # 不计算KL散度

        beta = self.get_beta()  # 获取主题-词分布
        preds = self.decode(theta, beta)  # 解码
        recon_loss = -(preds * bows).sum(1)  # 计算重构损失
        if aggregate:  # 如果需要平均损失
            recon_loss = recon_loss.mean()  # 计算平均损失
        return recon_loss, kld_theta  # 返回重构损失和KL散度

    def topwords(self, top_n=config.DEFAULT_TOP_N):  # 定义获取主题词方法
        with torch.no_grad():  # 不计算梯度
            beta = self.get_beta().cpu().numpy()  # 获取主题-词分布
        return get_top_terms(beta, self.vocab, top_n)  # 返回每个主题的主题词表


def predict(model, newdata=None, type='topics', batch_size=None, normalize=True, top_n=config.DEFAULT_TOP_N, doc_ids=None):  # 定义预测函数
    """Predicts with a fitted ETM.

    type='terms' returns a list with, for each topic, a DataFrame of the
    ``top_n`` terms and their weight in beta.

    type='topics' returns a tuple ``(theta, theta_weighted_avg)``: a
    documents x topics DataFrame indexed by ``doc_ids`` and the topic
    proportions averaged over documents, weighted by document length.
    """
    if type == 'terms':  # 如果预测主题词
        return model.topwords(top_n)  # 返回主题词
    if type != 'topics':  # 未知的预测类型
        raise ValueError(f"type should be 'topics' or 'terms', got {type!r}")  # 抛出数值错误

    check_sparse(newdata)  # 检查输入类型
    if np.any(row_sums(newdata) <= 0):  # 存在空文档
        raise ValueError("All rows of newdata should have at least 1 count")  # 抛出数值错误

    x = as_tokencounts(newdata, model.vocab)  # 转换为词-计数表示
    num_docs = len(x.tokens)  # 文档数量
    if num_docs == 0:  # 没有文档
        raise ValueError("newdata should contain at least 1 document")  # 抛出数值错误
    if batch_size is None:  # 没有指定批次大小
        batch_size = num_docs  # 一次处理全部文档
    device = model.rho.device  # 模型所在设备
    if doc_ids is None:  # 没有指定文档ID
        doc_ids = np.arange(num_docs)  # 使用行号
    elif len(doc_ids) != num_docs:  # 文档ID数量与文档数量不一致
        raise ValueError(f"doc_ids has {len(doc_ids)} entries but newdata has {num_docs} documents")  # 抛出数值错误

    preds = list()  # 初始化预测列表
    with torch.no_grad():  # 不计算梯度
        theta_weighted_avg = torch.zeros(model.num_topics, device=device)  # 初始化加权平均主题分布
        cnt = 0.  # 总词数
        for ind in torch.split(torch.arange(num_docs), batch_size):  # 顺序遍历批次
            data_batch = get_batch(x.tokens, x.counts, ind.numpy(), model.vocab_size).to(device)  # 构建稠密批次
            sums = data_batch.sum(1, keepdim=True)  # 每篇文档的总词数
            cnt += sums.sum().item()  # 累加总词数
            theta, _ = model.get_theta(normalize_bows(data_batch, normalize), training=False)  # 推断主题分布
            preds.append(theta.cpu().numpy())  # 保存主题分布
            theta_weighted_avg += (sums * theta).sum(0)  # 累加加权主题分布
        theta_weighted_avg = theta_weighted_avg / cnt  # 计算加权平均

    preds = pd.DataFrame(np.concatenate(preds, axis=0), index=doc_ids, columns=range(1, model.num_topics + 1))  # 构建文档-主题矩阵
    return preds, theta_weighted_avg.cpu().numpy()  # 返回文档-主题矩阵和加权平均主题分布
