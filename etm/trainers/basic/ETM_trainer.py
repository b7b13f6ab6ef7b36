import pandas as pd  # 导入pandas库
import torch  # 导入PyTorch库
from tqdm import tqdm  # 导入进度条

from ... import config  # 导入默认配置
from ...data.basic_dataset import TokenCounts, as_tokencounts, check_sparse, get_batch, remove_empty_docs, split_train_test  # 导入数据工具
from ...eva.perplexity import check_scorable_pairs, document_completion_perplexity  # 导入文档补全困惑度
from ...models.basic.ETM import normalize_bows, predict  # 导入归一化与预测函数
from ...utils import _utils  # 导入工具函数
from ...utils.logger import Logger  # 导入日志记录器


logger = Logger("WARNING")  # 创建警告级别的日志记录器

LOSS_COLUMNS = ['epoch', 'batch', 'batch_is_last', 'lr', 'loss', 'kl_theta', 'nelbo', 'batch_loss', 'batch_kl_theta', 'batch_nelbo']  # 损失记录列名


def get_lr(optimizer):  # 定义读取学习率函数
    return optimizer.param_groups[0]['lr']  # 返回第一组参数的学习率


def scale_lr(optimizer, factor):  # 定义缩放学习率函数
    for param_group in optimizer.param_groups:  # 遍历参数组
        param_group['lr'] = param_group['lr'] / factor  # 学习率除以退火因子


def check_annealing(lr_anneal_factor, lr_anneal_nonmono):  # 定义退火参数检查函数
    if 0 < lr_anneal_factor < 1:  # 因子在(0, 1)之间会提高学习率
        raise ValueError(f"lr_anneal_factor should be >= 1, or <= 0 to disable annealing, got {lr_anneal_factor}")  # 抛出数值错误
    if lr_anneal_nonmono < 0:  # 窗口大小非法
        raise ValueError(f"lr_anneal_nonmono should be non-negative, got {lr_anneal_nonmono}")  # 抛出数值错误


class TrainingState:  # 定义跨轮次训练状态类
    '''
        Cross-epoch bookkeeping: append-only history of validation perplexities,
        best epoch / perplexity, and the non-monotonic learning-rate annealing rule.
    '''
    def __init__(self, lr_anneal_factor=config.LR_ANNEAL_FACTOR, lr_anneal_nonmono=config.LR_ANNEAL_NONMONO, min_lr=config.MIN_LR):  # 初始化方法
        check_annealing(lr_anneal_factor, lr_anneal_nonmono)  # 检查退火参数
        self.lr_anneal_factor = lr_anneal_factor  # 退火因子
        self.lr_anneal_nonmono = lr_anneal_nonmono  # 非单调窗口大小
        self.min_lr = min_lr  # 学习率下限
        self.anneal_lr = lr_anneal_factor > 0 and lr_anneal_nonmono > 0  # 是否启用退火，空窗口从不退火
        self.best_epoch = 0  # 最优轮次
        self.best_val_ppl = config.BEST_PPL_INIT  # 最优困惑度
        self.all_val_ppls = list()  # 验证困惑度历史

    def should_anneal(self, val_ppl, lr):  # 定义是否退火判断方法
        if not self.anneal_lr or lr <= self.min_lr:  # 未启用退火或学习率已到下限
            return False  # 不退火
        if len(self.all_val_ppls) <= self.lr_anneal_nonmono:  # 历史长度不足窗口
            return False  # 不退火
        return val_ppl > min(self.all_val_ppls[-self.lr_anneal_nonmono:])  # 比窗口内最优更差时退火

    def update(self, epoch, val_ppl, optimizer):  # 定义每轮结束后的状态更新方法
        """Records ``val_ppl`` and returns True when the learning rate was annealed."""
        annealed = False  # 是否退火
        if val_ppl < self.best_val_ppl:  # 如果困惑度更优
            self.best_epoch = epoch  # 记录最优轮次
            self.best_val_ppl = val_ppl  # 记录最优困惑度
        else:  # 否则
            ## check whether to anneal lr  # 检查是否退火学习率
            lr = get_lr(optimizer)  # 当前学习率
            if self.anneal_lr and self.all_val_ppls:  # 如果启用退火且已有历史
                logger.debug(f"{val_ppl} versus {min(self.all_val_ppls[-self.lr_anneal_nonmono:])}")  # 记录比较信息
            if self.should_anneal(val_ppl, lr):  # 如果满足退火条件
                scale_lr(optimizer, self.lr_anneal_factor)  # 学习率除以退火因子
                annealed = True  # 标记已退火
                logger.info(f"annealing learning rate from {lr} to {get_lr(optimizer)}")  # 记录退火信息
        self.all_val_ppls.append(val_ppl)  # 追加困惑度历史
        return annealed  # 返回是否退火


class ETMTrainer:  # 定义ETM训练器类
    def __init__(self,  # 初始化方法
                 model,  # ETM模型
                 optimizer=None,  # 优化器，默认使用Adam
                 epochs=config.DEFAULT_EPOCHS,  # 训练轮数
                 batch_size=config.DEFAULT_BATCH_SIZE,  # 批次大小
                 learning_rate=config.DEFAULT_LR,  # 学习率，仅在未提供优化器时使用
                 weight_decay=config.DEFAULT_WEIGHT_DECAY,  # 权重衰减，仅在未提供优化器时使用
                 normalize=True,  # 是否归一化词袋
                 clip=0,  # 梯度裁剪的最大范数，<=0 表示不裁剪
                 lr_anneal_factor=config.LR_ANNEAL_FACTOR,  # 学习率退火因子
                 lr_anneal_nonmono=config.LR_ANNEAL_NONMONO,  # 非单调窗口大小
                 num_top_words=config.DEFAULT_TOP_N,  # 主题词数量
                 seed=None,  # 随机种子
                 verbose=False  # 详细输出，默认关闭
                ):
        if batch_size <= 0:  # 批次大小非法
            raise ValueError(f"batch_size should be positive, got {batch_size}")  # 抛出数值错误
        if epochs < 0:  # 训练轮数非法
            raise ValueError(f"epochs should be non-negative, got {epochs}")  # 抛出数值错误
        check_annealing(lr_anneal_factor, lr_anneal_nonmono)  # 检查退火参数

        self.model = model  # 设置模型
        self.epochs = epochs  # 设置训练轮数
        self.batch_size = batch_size  # 设置批次大小
        self.learning_rate = learning_rate  # 设置学习率
        self.weight_decay = weight_decay  # 设置权重衰减
        self.normalize = normalize  # 设置是否归一化
        self.clip = clip  # 设置梯度裁剪
        self.lr_anneal_factor = lr_anneal_factor  # 设置退火因子
        self.lr_anneal_nonmono = lr_anneal_nonmono  # 设置非单调窗口大小
        self.num_top_words = num_top_words  # 设置主题词数量
        self.seed = seed  # 设置随机种子
        self.verbose = verbose  # 设置详细输出

        if optimizer is None:  # 如果没有提供优化器
            optimizer = self.make_optimizer()  # 创建默认优化器
        if not isinstance(optimizer, torch.optim.Optimizer):  # 优化器类型错误
            raise TypeError(f"optimizer should be a torch.optim.Optimizer, got {type(optimizer).__name__}")  # 抛出类型错误
        self.optimizer = optimizer  # 设置优化器
        self.state = None  # 训练状态，在fit时创建

        if verbose:  # 如果需要详细输出
            logger.set_level("DEBUG")  # 设置日志级别为DEBUG
        else:  # 否则
            logger.set_level("WARNING")  # 设置日志级别为WARNING

    def make_optimizer(self):  # 定义创建优化器方法
        args_dict = {  # 优化器参数
            'params': self.model.parameters(),  # 模型参数
            'lr': self.learning_rate,  # 学习率
            'weight_decay': self.weight_decay  # 权重衰减
        }
        optimizer = torch.optim.Adam(**args_dict)  # 创建Adam优化器
        return optimizer  # 返回优化器

    def fit(self, data, train_pct=config.TRAIN_PCT):  # 定义在文档-词矩阵上训练的方法
        """Fits the model on a sparse document-term matrix.

        Empty documents are dropped, the remaining ones are split in a training
        set (``train_pct``) and two validation halves used for the document
        completion perplexity after every epoch.

        Returns:
            A dict with ``loss``, the per-batch loss DataFrame, and ``loss_test``,
            the validation perplexity of every epoch.
        """
        check_sparse(data)  # 检查输入类型
        num_docs = data.shape[0]  # 原始文档数量
        data, _ = remove_empty_docs(data)  # 移除空文档
        if data.shape[0] < num_docs:  # 存在空文档
            logger.warning(f"dropped {num_docs - data.shape[0]} empty documents")  # 记录警告信息
        idx = split_train_test(data.shape[0], train_pct=train_pct, seed=self.seed)  # 划分训练集和验证集
        vocab = self.model.vocab  # 模型词汇表
        test1 = as_tokencounts(data[idx['test1']], vocab)  # 第一个验证半集
        test2 = as_tokencounts(data[idx['test2']], vocab)  # 第二个验证半集
        train = as_tokencounts(data[idx['train']], vocab)  # 训练集
        logger.info(f"train_size: {len(train)}, test1_size: {len(test1)}, test2_size: {len(test2)}")  # 记录划分信息
        return self.fit_tokencounts(train, test1, test2)  # 在词-计数表示上训练

    def fit_tokencounts(self, data: TokenCounts, test1: TokenCounts, test2: TokenCounts):  # 定义在预划分数据上训练的方法
        if data.vocab_size != self.model.vocab_size:  # 词汇表大小不一致
            raise ValueError(f"training data has {data.vocab_size} terms but the model vocabulary has {self.model.vocab_size}")  # 抛出数值错误
        check_scorable_pairs(test1, test2)  # 训练前检查验证半集
        if self.seed is not None:  # 如果指定了随机种子
            torch.manual_seed(self.seed)  # 设置PyTorch随机种子

        self.state = TrainingState(self.lr_anneal_factor, self.lr_anneal_nonmono)  # 创建训练状态
        losses = list()  # 每轮的损失记录
        for epoch in tqdm(range(1, self.epochs + 1), disable=not self.verbose):  # 遍历训练轮数
            lossevolution = self.train_epoch(data, epoch)  # 训练一轮
            losses.append(lossevolution)  # 保存损失记录
            val_ppl = self.evaluate(test1, test2)  # 计算验证困惑度
            self.state.update(epoch, val_ppl, self.optimizer)  # 更新最优记录并检查退火

            last = lossevolution.iloc[-1]  # 本轮最后一个批次的记录
            logger.info(  # 记录本轮训练信息
                f'Epoch: {epoch:03d}/{self.epochs:03d}, learning rate: {get_lr(self.optimizer):5f}. '
                f'Training data stats - KL_theta: {last["kl_theta"]:2f}, Rec_loss: {last["loss"]:2f}, NELBO: {last["nelbo"]}. '
                f'Test data stats - Perplexity {val_ppl:2f}'
            )

        if losses:  # 如果训练了至少一轮
            losses = pd.concat(losses, ignore_index=True)  # 合并损失记录
        else:  # 否则
            losses = pd.DataFrame(columns=LOSS_COLUMNS)  # 空损失记录
        return {'loss': losses, 'loss_test': list(self.state.all_val_ppls)}  # 返回损失记录和验证困惑度

    def train_epoch(self, tokencounts: TokenCounts, epoch):  # 定义训练一轮的方法
        self.model.train()  # 切换到训练模式
        train_tokens = tokencounts.tokens  # 训练文档的词索引
        train_counts = tokencounts.counts  # 训练文档的词频
        vocab_size = tokencounts.vocab_size  # 词汇表大小
        num_docs_train = len(train_tokens)  # 训练文档数量
        if num_docs_train == 0:  # 没有训练文档
            raise ValueError("no training documents")  # 抛出数值错误
        device = self.model.rho.device  # 模型所在设备

        acc_loss = 0.  # 累计重构损失
        acc_kl_theta_loss = 0.  # 累计KL散度
        cnt = 0  # 批次数量
        indices = torch.split(torch.randperm(num_docs_train), self.batch_size)  # 打乱并切分批次
        losses = list()  # 每个批次的记录
        for i, ind in enumerate(indices, start=1):  # 遍历批次
            self.optimizer.zero_grad()  # 清空优化器梯度
            self.model.zero_grad()  # 清空模型梯度
            data_batch = get_batch(train_tokens, train_counts, ind.numpy(), vocab_size).to(device)  # 构建稠密批次
            normalized_data_batch = normalize_bows(data_batch, self.normalize)  # 归一化词袋
            recon_loss, kld_theta = self.model(data_batch, normalized_data_batch, training=True)  # 前向传播
            total_loss = recon_loss + kld_theta  # 总损失
            total_loss.backward()  # 反向传播

            if self.clip > 0:  # 如果需要梯度裁剪
                torch.nn.utils.clip_grad_norm_(self.model.parameters(), max_norm=self.clip)  # 梯度范数裁剪
            self.optimizer.step()  # 更新参数

            acc_loss += torch.sum(recon_loss).item()  # 累加重构损失
            acc_kl_theta_loss += torch.sum(kld_theta).item()  # 累加KL散度
            cnt += 1  # 批次数量加一

            cur_loss = round(acc_loss / cnt, 2)  # 平均重构损失
            cur_kl_theta = round(acc_kl_theta_loss / cnt, 2)  # 平均KL散度
            cur_real_loss = round(cur_loss + cur_kl_theta, 2)  # 平均负ELBO

            losses.append({  # 记录本批次信息
                'epoch': epoch,
                'batch': i,
                'batch_is_last': i == len(indices),
                'lr': get_lr(self.optimizer),
                'loss': cur_loss,
                'kl_theta': cur_kl_theta,
                'nelbo': cur_real_loss,
                'batch_loss': acc_loss,
                'batch_kl_theta': acc_kl_theta_loss,
                'batch_nelbo': acc_loss + acc_kl_theta_loss,
            })
            logger.debug(  # 记录批次信息
                f'Epoch: {epoch} .. batch: {i}/{len(indices)} .. LR: {get_lr(self.optimizer)} .. '
                f'KL_theta: {cur_kl_theta} .. Rec_loss: {cur_loss} .. NELBO: {cur_real_loss}'
            )
        return pd.DataFrame(losses, columns=LOSS_COLUMNS)  # 返回本轮损失记录

    def evaluate(self, test1: TokenCounts, test2: TokenCounts):  # 定义验证方法
        self.model.eval()  # 切换到评估模式
        return document_completion_perplexity(self.model, test1, test2, self.batch_size, normalize=self.normalize)  # 返回文档补全困惑度

    @property  # 属性装饰器
    def best_epoch(self):  # 最优轮次
        return None if self.state is None else self.state.best_epoch  # 返回最优轮次

    @property  # 属性装饰器
    def best_val_ppl(self):  # 最优困惑度
        return None if self.state is None else self.state.best_val_ppl  # 返回最优困惑度

    def test(self, bow, doc_ids=None):  # 定义测试方法
        self.model.eval()  # 切换到评估模式
        theta, _ = predict(self.model, bow, type='topics', batch_size=self.batch_size, normalize=self.normalize, doc_ids=doc_ids)  # 推断主题分布
        return theta.to_numpy()  # 返回主题分布

    def get_beta(self):  # 定义获取主题-词分布方法
        with torch.no_grad():  # 不计算梯度
            beta = self.model.get_beta().cpu().numpy()  # 获取主题-词分布
        return beta  # 返回主题-词分布

    def get_top_words(self, num_top_words=None):  # 定义获取主题词方法
        if num_top_words is None:  # 如果没有指定主题词数量
            num_top_words = self.num_top_words  # 使用默认的主题词数量
        beta = self.get_beta()  # 获取主题-词分布
        top_words = _utils.get_top_words(beta, self.model.vocab, num_top_words, self.verbose)  # 获取主题词
        return top_words  # 返回主题词

    def export_theta(self, train_bow, test_bow):  # 定义导出主题分布方法
        train_theta = self.test(train_bow)  # 获取训练集主题分布
        test_theta = self.test(test_bow)  # 获取测试集主题分布
        return train_theta, test_theta  # 返回训练和测试主题分布
